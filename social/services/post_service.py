"""
Post service — business logic for the Post aggregate.

Design notes
------------
- The author must exist before a post is created.  The check goes through a
  narrow ``UserExistenceChecker`` so this module never depends on the user
  repository directly.
- Update and delete read the post first, enforce ownership, then run a
  version-checked write inside a transaction.  A concurrent write to the
  same post between the read and the write yields ``ConcurrentUpdateError``
  instead of a silent overwrite.
- An update body that sets no field is a no-op: no transaction, no version
  bump and no ``PostUpdated``.  Users and comments follow the same rule.
- Detail and list reads go through the cache-aside pattern.  The cache is
  never written by mutating paths; it is purged by the post event
  subscribers after commit.
"""
from social.cache import CacheManager
from social.config import settings
from social.context import RequestContext
from social.domain import (
    UserExistenceChecker,
    can_be_deleted_by,
    can_be_edited_by,
    normalize_tags,
    validate_content,
    validate_title,
)
from social.errors import PostForbiddenError, UserNotFoundError
from social.events import EventBus, PostCreated, PostDeleted, PostUpdated
from social.models import Post
from social.repositories import PostRepository
from social.schemas import PostCreate, PostListResponse, PostResponse, PostUpdate
from social.services.base import TransactionalService
from social.transactions import TransactionManager


def to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        user_id=post.user_id,
        tags=post.tag_names,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


class PostService(TransactionalService):
    def __init__(
        self,
        repo: PostRepository,
        users: UserExistenceChecker,
        event_bus: EventBus | None = None,
        transactions: TransactionManager | None = None,
        cache: CacheManager | None = None,
    ) -> None:
        super().__init__(event_bus, transactions)
        self.repo = repo
        self.users = users
        self.cache = cache

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_post(self, ctx: RequestContext, user_id: int, data: PostCreate) -> PostResponse:
        validate_title(data.title)
        validate_content(data.content)

        if not await self.users.exists(ctx, user_id):
            raise UserNotFoundError()

        post = Post(title=data.title, content=data.content, user_id=user_id)
        tags = normalize_tags(data.tags)
        post = await self._persist(ctx, lambda tx: self.repo.create(tx, post, tags))

        await self._publish(ctx, PostCreated(post_id=post.id, user_id=post.user_id, title=post.title))
        return to_response(post)

    async def update_post(
        self,
        ctx: RequestContext,
        post_id: int,
        acting_user_id: int | None,
        data: PostUpdate,
    ) -> PostResponse:
        post = await self.repo.get_by_id(ctx, post_id)
        if not can_be_edited_by(post.user_id, acting_user_id):
            raise PostForbiddenError()

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return to_response(post)
        if "title" in changes:
            validate_title(changes["title"])
        if "content" in changes:
            validate_content(changes["content"])
        tags = normalize_tags(changes["tags"]) if "tags" in changes else None

        updated = await self._persist(
            ctx,
            lambda tx: self.repo.update(
                tx,
                post.id,
                post.version,
                title=changes.get("title"),
                content=changes.get("content"),
                tag_names=tags,
            ),
        )

        await self._publish(
            ctx, PostUpdated(post_id=updated.id, user_id=updated.user_id, title=updated.title)
        )
        return to_response(updated)

    async def delete_post(self, ctx: RequestContext, post_id: int, acting_user_id: int | None) -> None:
        post = await self.repo.get_by_id(ctx, post_id)
        if not can_be_deleted_by(post.user_id, acting_user_id):
            raise PostForbiddenError()

        await self._persist(ctx, lambda tx: self.repo.delete(tx, post.id, post.version))
        await self._publish(ctx, PostDeleted(post_id=post.id, user_id=post.user_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_post(self, ctx: RequestContext, post_id: int) -> PostResponse:
        key = CacheManager.post_key(post_id)
        if self._cacheable(ctx):
            cached = await self.cache.get(key)
            if cached:
                return PostResponse(**cached)

        response = to_response(await self.repo.get_by_id(ctx, post_id))
        if self._cacheable(ctx):
            await self.cache.set(key, response.model_dump(mode="json"), ttl=settings.CACHE_TTL_DETAIL)
        return response

    async def exists(self, ctx: RequestContext, post_id: int) -> bool:
        return await self.repo.exists(ctx, post_id)

    async def list_posts(self, ctx: RequestContext, limit: int, offset: int) -> PostListResponse:
        key = CacheManager.post_list_key(limit, offset)
        if self._cacheable(ctx):
            cached = await self.cache.get(key)
            if cached:
                return PostListResponse(**cached)

        posts = await self.repo.list(ctx, limit, offset)
        total = await self.repo.count(ctx)
        response = self._page(posts, total, limit, offset)
        if self._cacheable(ctx):
            await self.cache.set(key, response.model_dump(mode="json"), ttl=settings.CACHE_TTL_LIST)
        return response

    async def list_user_posts(self, ctx: RequestContext, user_id: int, limit: int, offset: int) -> PostListResponse:
        if not await self.users.exists(ctx, user_id):
            raise UserNotFoundError()
        posts = await self.repo.get_by_user_id(ctx, user_id, limit, offset)
        total = await self.repo.count_by_user_id(ctx, user_id)
        return self._page(posts, total, limit, offset)

    async def search_by_title(self, ctx: RequestContext, title: str, limit: int, offset: int) -> list[PostResponse]:
        return [to_response(p) for p in await self.repo.search_by_title(ctx, title, limit, offset)]

    async def get_by_tags(self, ctx: RequestContext, tags: list[str], limit: int, offset: int) -> list[PostResponse]:
        tags = normalize_tags(tags)
        if not tags:
            return []
        return [to_response(p) for p in await self.repo.get_by_tags(ctx, tags, limit, offset)]

    def _cacheable(self, ctx: RequestContext) -> bool:
        # Reads inside a transaction may see uncommitted rows.
        return self.cache is not None and not ctx.in_transaction

    @staticmethod
    def _page(posts: list[Post], total: int, limit: int, offset: int) -> PostListResponse:
        return PostListResponse(
            posts=[to_response(p) for p in posts],
            total=total,
            limit=limit,
            offset=offset,
        )
