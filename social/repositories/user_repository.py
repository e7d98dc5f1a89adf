from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from social.context import RequestContext
from social.errors import UserAlreadyExistsError, UserNotFoundError
from social.models import User, utcnow
from social.repositories.base import SoftDeleteRepository


class UserRepository(SoftDeleteRepository[User]):
    model = User
    not_found_error = UserNotFoundError
    entity_name = "user"

    async def create(self, ctx: RequestContext, user: User) -> User:
        """Insert *user*; the id is assigned by storage on flush."""
        async with self._session(ctx, "create") as session:
            session.add(user)
            try:
                await session.flush()
            except IntegrityError as exc:
                # Lost a race against a concurrent registration.
                raise UserAlreadyExistsError() from exc
            return user

    async def get_by_username(self, ctx: RequestContext, username: str) -> User:
        async with self._session(ctx, "get") as session:
            return await self._one(session, self._live().where(User.username == username))

    async def get_by_email(self, ctx: RequestContext, email: str) -> User:
        async with self._session(ctx, "get") as session:
            return await self._one(session, self._live().where(User.email == email))

    async def username_taken(self, ctx: RequestContext, username: str, exclude_id: int | None = None) -> bool:
        """True if any row, soft-deleted included, holds *username*."""
        return await self._taken(ctx, User.username == username, exclude_id)

    async def email_taken(self, ctx: RequestContext, email: str, exclude_id: int | None = None) -> bool:
        """True if any row, soft-deleted included, holds *email*."""
        return await self._taken(ctx, User.email == email, exclude_id)

    async def _taken(self, ctx: RequestContext, criterion, exclude_id: int | None) -> bool:
        stmt = select(func.count()).select_from(User).where(criterion)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        async with self._session(ctx, "check") as session:
            return (await session.execute(stmt)).scalar_one() > 0

    async def update(
        self,
        ctx: RequestContext,
        user_id: int,
        expected_version: int,
        *,
        username: str | None = None,
        email: str | None = None,
        password_hash: bytes | None = None,
    ) -> User:
        values = {
            k: v
            for k, v in {"username": username, "email": email, "password_hash": password_hash}.items()
            if v is not None
        }
        values["updated_at"] = utcnow()
        async with self._session(ctx, "update") as session:
            try:
                await self._conditional_update(session, user_id, expected_version, values)
            except IntegrityError as exc:
                raise UserAlreadyExistsError() from exc
            return await self._one(session, self._live().where(User.id == user_id))
