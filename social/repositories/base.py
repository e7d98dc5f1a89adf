"""
Shared plumbing for the soft-delete repositories.

Every public method takes the ``RequestContext`` first and obtains its
session through ``session_scope``: inside a transaction the statements run
on the transaction's session, otherwise on a short-lived default session.

Storage errors are normalized here.  "No row" becomes the repository's
``not_found_error`` and any other ``SQLAlchemyError`` is re-raised as
``InternalError`` carrying the operation name.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, TypeVar

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.context import RequestContext
from social.errors import ConcurrentUpdateError, DomainError, InternalError, NotFoundError
from social.models import SoftDeleteMixin, utcnow
from social.transactions import session_scope

M = TypeVar("M", bound=SoftDeleteMixin)


class SoftDeleteRepository(Generic[M]):
    model: type[M]
    not_found_error: type[NotFoundError] = NotFoundError
    entity_name: str = "entity"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Session / error helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self, ctx: RequestContext, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with session_scope(ctx, self._session_factory) as session:
                yield session
        except DomainError:
            raise
        except SQLAlchemyError as exc:
            raise InternalError(f"failed to {operation} {self.entity_name}: {exc}") from exc

    def _live(self) -> Select:
        return select(self.model).where(self.model.deleted_at.is_(None))

    async def _one(self, session: AsyncSession, stmt: Select) -> M:
        # Rows may have been changed by a Core UPDATE earlier in this session.
        stmt = stmt.execution_options(populate_existing=True)
        obj = (await session.execute(stmt)).scalars().first()
        if obj is None:
            raise self.not_found_error()
        return obj

    async def _all(self, session: AsyncSession, stmt: Select) -> list[M]:
        return list((await session.execute(stmt)).scalars().all())

    async def _count(self, session: AsyncSession, *criteria) -> int:
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.deleted_at.is_(None), *criteria)
        )
        return (await session.execute(stmt)).scalar_one()

    def _page(self, stmt: Select, limit: int, offset: int) -> Select:
        return (
            stmt.order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(limit)
            .offset(offset)
        )

    async def _conditional_update(
        self,
        session: AsyncSession,
        entity_id: int,
        expected_version: int,
        values: dict,
    ) -> None:
        """
        Apply *values* only if the row is live and still at *expected_version*.

        Bumps ``version``.  Raises ``not_found_error`` when the row is gone and
        ``ConcurrentUpdateError`` when another writer got there first.
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == entity_id,
                self.model.version == expected_version,
                self.model.deleted_at.is_(None),
            )
            .values(version=self.model.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            if await self._count(session, self.model.id == entity_id) == 0:
                raise self.not_found_error()
            raise ConcurrentUpdateError()

    # ------------------------------------------------------------------
    # Common operations
    # ------------------------------------------------------------------

    async def get_by_id(self, ctx: RequestContext, entity_id: int) -> M:
        async with self._session(ctx, "get") as session:
            return await self._one(session, self._live().where(self.model.id == entity_id))

    async def exists(self, ctx: RequestContext, entity_id: int) -> bool:
        async with self._session(ctx, "check") as session:
            return await self._count(session, self.model.id == entity_id) > 0

    async def list(self, ctx: RequestContext, limit: int, offset: int) -> list[M]:
        async with self._session(ctx, "list") as session:
            return await self._all(session, self._page(self._live(), limit, offset))

    async def count(self, ctx: RequestContext) -> int:
        async with self._session(ctx, "count") as session:
            return await self._count(session)

    async def delete(self, ctx: RequestContext, entity_id: int, expected_version: int) -> None:
        """Soft delete: stamp ``deleted_at``; the row is kept."""
        async with self._session(ctx, "delete") as session:
            now = utcnow()
            await self._conditional_update(
                session, entity_id, expected_version, {"deleted_at": now, "updated_at": now}
            )

    async def get_including_deleted(self, ctx: RequestContext, entity_id: int) -> M:
        """Storage probe that bypasses the soft-delete filter."""
        async with self._session(ctx, "probe") as session:
            stmt = select(self.model).where(self.model.id == entity_id)
            return await self._one(session, stmt)
