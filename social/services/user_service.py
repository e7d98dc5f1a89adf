"""
User service — registration, profile updates and soft deletion.

Usernames and emails stay reserved after a soft delete: the uniqueness
probes look at every row, matching the table's unique constraints.  The
pre-checks give a clean 409 in the common case; the constraint itself
settles races between concurrent registrations.
"""
from social.context import RequestContext
from social.domain import (
    can_be_deleted_by,
    can_be_edited_by,
    validate_email,
    validate_password,
    validate_username,
)
from social.errors import (
    InvalidCredentialsError,
    UserAlreadyExistsError,
    UserForbiddenError,
    UserNotFoundError,
)
from social.events import EventBus, UserCreated, UserDeleted, UserUpdated
from social.models import User
from social.repositories import UserRepository
from social.schemas import UserCreate, UserListResponse, UserResponse, UserUpdate
from social.security import hash_password, verify_password
from social.services.base import TransactionalService
from social.transactions import TransactionManager


def to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


class UserService(TransactionalService):
    def __init__(
        self,
        repo: UserRepository,
        event_bus: EventBus | None = None,
        transactions: TransactionManager | None = None,
    ) -> None:
        super().__init__(event_bus, transactions)
        self.repo = repo

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_user(self, ctx: RequestContext, data: UserCreate) -> UserResponse:
        validate_username(data.username)
        validate_email(data.email)
        validate_password(data.password)

        if await self.repo.username_taken(ctx, data.username):
            raise UserAlreadyExistsError()
        if await self.repo.email_taken(ctx, data.email):
            raise UserAlreadyExistsError()

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
        )
        user = await self._persist(ctx, lambda tx: self.repo.create(tx, user))

        await self._publish(
            ctx, UserCreated(user_id=user.id, username=user.username, email=user.email)
        )
        return to_response(user)

    async def update_user(
        self,
        ctx: RequestContext,
        user_id: int,
        acting_user_id: int | None,
        data: UserUpdate,
    ) -> UserResponse:
        user = await self.repo.get_by_id(ctx, user_id)
        if not can_be_edited_by(user.id, acting_user_id):
            raise UserForbiddenError()

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return to_response(user)
        if "username" in changes:
            validate_username(changes["username"])
            if await self.repo.username_taken(ctx, changes["username"], exclude_id=user.id):
                raise UserAlreadyExistsError()
        if "email" in changes:
            validate_email(changes["email"])
            if await self.repo.email_taken(ctx, changes["email"], exclude_id=user.id):
                raise UserAlreadyExistsError()
        password_hash = None
        if "password" in changes:
            password_hash = hash_password(validate_password(changes["password"]))

        updated = await self._persist(
            ctx,
            lambda tx: self.repo.update(
                tx,
                user.id,
                user.version,
                username=changes.get("username"),
                email=changes.get("email"),
                password_hash=password_hash,
            ),
        )

        await self._publish(
            ctx, UserUpdated(user_id=updated.id, username=updated.username, email=updated.email)
        )
        return to_response(updated)

    async def delete_user(self, ctx: RequestContext, user_id: int, acting_user_id: int | None) -> None:
        user = await self.repo.get_by_id(ctx, user_id)
        if not can_be_deleted_by(user.id, acting_user_id):
            raise UserForbiddenError()

        await self._persist(ctx, lambda tx: self.repo.delete(tx, user.id, user.version))
        await self._publish(ctx, UserDeleted(user_id=user.id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_user(self, ctx: RequestContext, user_id: int) -> UserResponse:
        return to_response(await self.repo.get_by_id(ctx, user_id))

    async def get_user_by_username(self, ctx: RequestContext, username: str) -> UserResponse:
        return to_response(await self.repo.get_by_username(ctx, username))

    async def list_users(self, ctx: RequestContext, limit: int, offset: int) -> UserListResponse:
        users = await self.repo.list(ctx, limit, offset)
        total = await self.repo.count(ctx)
        return UserListResponse(
            users=[to_response(u) for u in users],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def exists(self, ctx: RequestContext, user_id: int) -> bool:
        return await self.repo.exists(ctx, user_id)

    async def authenticate(self, ctx: RequestContext, email: str, password: str) -> User:
        """Return the live user owning *email* if *password* matches."""
        try:
            user = await self.repo.get_by_email(ctx, email)
        except UserNotFoundError:
            raise InvalidCredentialsError() from None
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user
