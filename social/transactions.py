"""
Transaction manager and the repository-side session lookup.

Design notes
------------
- ``TransactionManager.with_transaction`` opens one ``AsyncSession``
  transaction, attaches it to a *derived* ``RequestContext`` and awaits the
  unit of work with that context.  Success commits; any exception (including
  ``asyncio.CancelledError``) rolls back and is re-raised unchanged.  A
  failing ROLLBACK is logged and does not replace that exception.
- A failed COMMIT surfaces as ``TransactionError`` chained to the driver
  error; the database has already discarded the transaction at that point.
- ``session_scope`` is the only place repositories obtain a session.  With a
  transaction in the context it yields that session and leaves commit to the
  manager; without one it opens a short-lived session on the default pool
  and commits it when the block succeeds.
- A context that already carries an open transaction joins it: the outermost
  ``with_transaction`` call owns commit and rollback.
- Callbacks queued with ``TransactionHandle.after_commit`` run after a
  successful COMMIT and are dropped on rollback.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.context import RequestContext, TransactionHandle
from social.errors import TransactionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[RequestContext], Awaitable[T]]


class TransactionManager:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        # Number of storage transactions opened so far.
        self.calls = 0

    @asynccontextmanager
    async def transaction(self, ctx: RequestContext) -> AsyncIterator[RequestContext]:
        """Async context-manager form of ``with_transaction``."""
        if ctx.in_transaction:
            yield ctx
            return

        self.calls += 1
        async with self._session_factory() as session:
            handle = TransactionHandle(session)
            tx_ctx = ctx.with_transaction(handle)
            await session.begin()
            try:
                yield tx_ctx
            except BaseException:
                handle.close()
                handle.pop_after_commit()
                try:
                    await session.rollback()
                except SQLAlchemyError as rollback_exc:
                    logger.error(
                        "Transaction rollback failed (request_id=%s): %s", ctx.request_id, rollback_exc
                    )
                else:
                    logger.debug("Transaction rolled back (request_id=%s)", ctx.request_id)
                raise
            handle.close()
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                logger.error("Transaction commit failed (request_id=%s): %s", ctx.request_id, exc)
                raise TransactionError(f"commit failed: {exc}") from exc

        for callback in handle.pop_after_commit():
            await callback()

    async def with_transaction(self, ctx: RequestContext, fn: UnitOfWork[T]) -> T:
        """Run *fn* atomically and return its result."""
        async with self.transaction(ctx) as tx_ctx:
            return await fn(tx_ctx)


@asynccontextmanager
async def session_scope(
    ctx: RequestContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield the session repositories must execute against for *ctx*."""
    if ctx.transaction is not None:
        yield ctx.transaction.session
        return

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
