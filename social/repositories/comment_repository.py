from social.context import RequestContext
from social.errors import CommentNotFoundError
from social.models import Comment, utcnow
from social.repositories.base import SoftDeleteRepository


class CommentRepository(SoftDeleteRepository[Comment]):
    model = Comment
    not_found_error = CommentNotFoundError
    entity_name = "comment"

    async def create(self, ctx: RequestContext, comment: Comment) -> Comment:
        async with self._session(ctx, "create") as session:
            session.add(comment)
            await session.flush()
            return comment

    async def update(self, ctx: RequestContext, comment_id: int, expected_version: int, *, content: str) -> Comment:
        async with self._session(ctx, "update") as session:
            await self._conditional_update(
                session, comment_id, expected_version, {"content": content, "updated_at": utcnow()}
            )
            return await self._one(session, self._live().where(Comment.id == comment_id))

    async def get_by_post_id(self, ctx: RequestContext, post_id: int, limit: int, offset: int) -> list[Comment]:
        async with self._session(ctx, "list") as session:
            stmt = self._page(self._live().where(Comment.post_id == post_id), limit, offset)
            return await self._all(session, stmt)

    async def count_by_post_id(self, ctx: RequestContext, post_id: int) -> int:
        async with self._session(ctx, "count") as session:
            return await self._count(session, Comment.post_id == post_id)
