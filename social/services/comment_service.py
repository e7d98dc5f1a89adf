"""
Comment service — comments attached to a post.

Both the post and the commenting user must exist before a comment is
written; either check failing raises before a transaction is opened.  Only
the comment's author may edit or delete it.
"""
from social.context import RequestContext
from social.domain import (
    PostExistenceChecker,
    UserExistenceChecker,
    can_be_deleted_by,
    can_be_edited_by,
    validate_content,
)
from social.errors import CommentForbiddenError, PostNotFoundError, UserNotFoundError
from social.events import CommentCreated, CommentDeleted, CommentUpdated, EventBus
from social.models import Comment
from social.repositories import CommentRepository
from social.schemas import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from social.services.base import TransactionalService
from social.transactions import TransactionManager


def to_response(comment: Comment) -> CommentResponse:
    return CommentResponse.model_validate(comment)


class CommentService(TransactionalService):
    def __init__(
        self,
        repo: CommentRepository,
        posts: PostExistenceChecker,
        users: UserExistenceChecker,
        event_bus: EventBus | None = None,
        transactions: TransactionManager | None = None,
    ) -> None:
        super().__init__(event_bus, transactions)
        self.repo = repo
        self.posts = posts
        self.users = users

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_comment(
        self,
        ctx: RequestContext,
        post_id: int,
        user_id: int,
        data: CommentCreate,
    ) -> CommentResponse:
        validate_content(data.content)

        if not await self.posts.exists(ctx, post_id):
            raise PostNotFoundError()
        if not await self.users.exists(ctx, user_id):
            raise UserNotFoundError()

        comment = Comment(content=data.content, post_id=post_id, user_id=user_id)
        comment = await self._persist(ctx, lambda tx: self.repo.create(tx, comment))

        await self._publish(
            ctx,
            CommentCreated(comment_id=comment.id, post_id=comment.post_id, user_id=comment.user_id),
        )
        return to_response(comment)

    async def update_comment(
        self,
        ctx: RequestContext,
        comment_id: int,
        acting_user_id: int | None,
        data: CommentUpdate,
    ) -> CommentResponse:
        comment = await self.repo.get_by_id(ctx, comment_id)
        if not can_be_edited_by(comment.user_id, acting_user_id):
            raise CommentForbiddenError()

        if data.content is None:
            return to_response(comment)
        validate_content(data.content)

        updated = await self._persist(
            ctx,
            lambda tx: self.repo.update(tx, comment.id, comment.version, content=data.content),
        )

        await self._publish(
            ctx,
            CommentUpdated(comment_id=updated.id, post_id=updated.post_id, user_id=updated.user_id),
        )
        return to_response(updated)

    async def delete_comment(self, ctx: RequestContext, comment_id: int, acting_user_id: int | None) -> None:
        comment = await self.repo.get_by_id(ctx, comment_id)
        if not can_be_deleted_by(comment.user_id, acting_user_id):
            raise CommentForbiddenError()

        await self._persist(ctx, lambda tx: self.repo.delete(tx, comment.id, comment.version))
        await self._publish(
            ctx,
            CommentDeleted(comment_id=comment.id, post_id=comment.post_id, user_id=comment.user_id),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_comment(self, ctx: RequestContext, comment_id: int) -> CommentResponse:
        return to_response(await self.repo.get_by_id(ctx, comment_id))

    async def list_comments(self, ctx: RequestContext, limit: int, offset: int) -> CommentListResponse:
        comments = await self.repo.list(ctx, limit, offset)
        total = await self.repo.count(ctx)
        return self._page(comments, total, limit, offset)

    async def list_post_comments(
        self, ctx: RequestContext, post_id: int, limit: int, offset: int
    ) -> CommentListResponse:
        if not await self.posts.exists(ctx, post_id):
            raise PostNotFoundError()
        comments = await self.repo.get_by_post_id(ctx, post_id, limit, offset)
        total = await self.repo.count_by_post_id(ctx, post_id)
        return self._page(comments, total, limit, offset)

    @staticmethod
    def _page(comments: list[Comment], total: int, limit: int, offset: int) -> CommentListResponse:
        return CommentListResponse(
            comments=[to_response(c) for c in comments],
            total=total,
            limit=limit,
            offset=offset,
        )
