from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from social.context import RequestContext
from social.errors import PostNotFoundError
from social.models import Post, Tag, post_tags, utcnow
from social.repositories.base import SoftDeleteRepository

# Dialects with INSERT ... ON CONFLICT DO NOTHING.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def _resolve_tags(session: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag rows for *tag_names*, creating any that do not yet exist.

    Tags are shared between posts, so two writers may introduce the same new
    name concurrently.  The insert skips names that already exist (or that a
    concurrent transaction committed first) and the rows are then read back.
    """
    if not tag_names:
        return []
    insert = _UPSERT_INSERTS[session.get_bind().dialect.name]
    await session.execute(
        insert(Tag)
        .values([{"name": name} for name in tag_names])
        .on_conflict_do_nothing(index_elements=["name"])
    )
    result = await session.execute(select(Tag).where(Tag.name.in_(tag_names)))
    return list(result.scalars().all())


class PostRepository(SoftDeleteRepository[Post]):
    model = Post
    not_found_error = PostNotFoundError
    entity_name = "post"

    async def create(self, ctx: RequestContext, post: Post, tag_names: list[str]) -> Post:
        async with self._session(ctx, "create") as session:
            post.tags = await _resolve_tags(session, tag_names)
            session.add(post)
            await session.flush()
            return post

    async def update(
        self,
        ctx: RequestContext,
        post_id: int,
        expected_version: int,
        *,
        title: str | None = None,
        content: str | None = None,
        tag_names: list[str] | None = None,
    ) -> Post:
        values = {k: v for k, v in {"title": title, "content": content}.items() if v is not None}
        values["updated_at"] = utcnow()
        async with self._session(ctx, "update") as session:
            await self._conditional_update(session, post_id, expected_version, values)
            post = await self._one(session, self._live().where(Post.id == post_id))
            if tag_names is not None:
                post.tags = await _resolve_tags(session, tag_names)
                await session.flush()
            return post

    async def get_by_user_id(self, ctx: RequestContext, user_id: int, limit: int, offset: int) -> list[Post]:
        async with self._session(ctx, "list") as session:
            stmt = self._page(self._live().where(Post.user_id == user_id), limit, offset)
            return await self._all(session, stmt)

    async def count_by_user_id(self, ctx: RequestContext, user_id: int) -> int:
        async with self._session(ctx, "count") as session:
            return await self._count(session, Post.user_id == user_id)

    async def search_by_title(self, ctx: RequestContext, title: str, limit: int, offset: int) -> list[Post]:
        """Case-insensitive substring match on the title."""
        async with self._session(ctx, "search") as session:
            stmt = self._page(self._live().where(Post.title.icontains(title, autoescape=True)), limit, offset)
            return await self._all(session, stmt)

    async def get_by_tags(self, ctx: RequestContext, tag_names: list[str], limit: int, offset: int) -> list[Post]:
        """Posts carrying at least one of *tag_names*."""
        tagged = (
            select(post_tags.c.post_id)
            .join(Tag, Tag.id == post_tags.c.tag_id)
            .where(Tag.name.in_(tag_names))
        )
        async with self._session(ctx, "list") as session:
            stmt = self._page(self._live().where(Post.id.in_(tagged)), limit, offset)
            return await self._all(session, stmt)
