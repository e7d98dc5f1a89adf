"""
TransactionManager and session_scope tests.

Writes go through the repositories so the tests observe exactly what the
services rely on: statements on the context's transaction, visibility only
after commit, and nothing left behind after a rollback.
"""
import asyncio
import logging

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.context import RequestContext, TransactionHandle
from social.errors import InternalError, TransactionError, UserNotFoundError
from social.models import User
from social.repositories import UserRepository
from social.transactions import TransactionManager, session_scope


def _user(n: int) -> User:
    return User(username=f"user{n}", email=f"user{n}@example.com", password_hash=b"x")


class Boom(Exception):
    pass


# ---------------------------------------------------------------------------
# Commit / rollback
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_commit_makes_writes_visible(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    user = await tm.with_transaction(ctx, lambda tx: repo.create(tx, _user(1)))

    assert user.id > 0
    assert tm.calls == 1
    fetched = await repo.get_by_id(ctx, user.id)
    assert fetched.username == "user1"


@pytest.mark.asyncio
async def test_writes_invisible_until_commit(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    async with tm.transaction(ctx) as tx:
        user = await repo.create(tx, _user(1))
        # Same transaction sees the row, a fresh context does not.
        assert await repo.exists(tx, user.id)
        assert not await repo.exists(ctx, user.id)

    assert await repo.exists(ctx, user.id)


@pytest.mark.asyncio
async def test_rollback_on_error_reraises_unchanged(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    async def work(tx):
        await repo.create(tx, _user(1))
        raise Boom("mid-transaction failure")

    with pytest.raises(Boom):
        await tm.with_transaction(ctx, work)

    assert await repo.count(ctx) == 0


@pytest.mark.asyncio
async def test_failure_on_nth_call_matches_failure_on_first(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    def failing_after(n: int):
        async def work(tx):
            for i in range(n):
                await repo.create(tx, _user(i))
            raise Boom(f"failed after {n} writes")
        return work

    with pytest.raises(Boom):
        await tm.with_transaction(ctx, failing_after(0))
    after_first = await repo.count(ctx)

    with pytest.raises(Boom):
        await tm.with_transaction(ctx, failing_after(3))
    after_nth = await repo.count(ctx)

    assert after_first == after_nth == 0
    assert tm.calls == 2


@pytest.mark.asyncio
async def test_cancellation_rolls_back(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)
    written = asyncio.Event()

    async def work(tx):
        await repo.create(tx, _user(1))
        written.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(tm.with_transaction(ctx, work))
    await written.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await repo.count(ctx) == 0


@pytest.mark.asyncio
async def test_commit_failure_raises_transaction_error(engine, session_factory, ctx):
    class FailingCommitSession(AsyncSession):
        async def commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    failing_factory = async_sessionmaker(engine, class_=FailingCommitSession, expire_on_commit=False)
    tm = TransactionManager(failing_factory)
    repo = UserRepository(failing_factory)

    with pytest.raises(TransactionError) as exc_info:
        await tm.with_transaction(ctx, lambda tx: repo.create(tx, _user(1)))

    assert isinstance(exc_info.value, InternalError)
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert await UserRepository(session_factory).count(ctx) == 0


@pytest.mark.asyncio
async def test_rollback_failure_does_not_mask_original_error(engine, session_factory, ctx, caplog):
    class FailingRollbackSession(AsyncSession):
        async def rollback(self):
            raise OperationalError("ROLLBACK", {}, Exception("connection reset"))

    failing_factory = async_sessionmaker(engine, class_=FailingRollbackSession, expire_on_commit=False)
    tm = TransactionManager(failing_factory)
    repo = UserRepository(failing_factory)

    async def work(tx):
        await repo.create(tx, _user(1))
        raise Boom("unit of work failed")

    with caplog.at_level(logging.ERROR, logger="social.transactions"):
        with pytest.raises(Boom, match="unit of work failed"):
            await tm.with_transaction(ctx, work)

    assert "connection reset" in caplog.text
    assert await UserRepository(session_factory).count(ctx) == 0


# ---------------------------------------------------------------------------
# Context handling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_caller_context_is_not_mutated(session_factory, ctx):
    tm = TransactionManager(session_factory)
    seen = []

    async def work(tx):
        seen.append(tx)
        return tx.request_id

    assert await tm.with_transaction(ctx, work) == "test"
    assert ctx.transaction is None
    assert seen[0] is not ctx
    assert seen[0].transaction is not None


@pytest.mark.asyncio
async def test_nested_call_joins_outer_transaction(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    async def inner(tx):
        return await repo.create(tx, _user(2))

    with pytest.raises(Boom):
        async with tm.transaction(ctx) as tx:
            await repo.create(tx, _user(1))
            joined = await tm.with_transaction(tx, inner)
            assert joined.id > 0
            raise Boom()

    # The inner unit of work was part of the outer one.
    assert tm.calls == 1
    assert await repo.count(ctx) == 0


@pytest.mark.asyncio
async def test_handle_refuses_use_after_close(session_factory, ctx):
    tm = TransactionManager(session_factory)
    repo = UserRepository(session_factory)

    async with tm.transaction(ctx) as tx:
        handle = tx.transaction
        assert not handle.closed

    assert handle.closed
    assert not tx.in_transaction
    with pytest.raises(TransactionError):
        handle.session
    with pytest.raises(TransactionError):
        await repo.get_by_id(tx, 1)


@pytest.mark.asyncio
async def test_after_commit_callbacks_run_only_on_commit(session_factory, ctx):
    tm = TransactionManager(session_factory)
    calls = []

    async def record():
        calls.append("committed")

    async with tm.transaction(ctx) as tx:
        tx.transaction.after_commit(record)
        assert calls == []
    assert calls == ["committed"]

    with pytest.raises(Boom):
        async with tm.transaction(ctx) as tx:
            tx.transaction.after_commit(record)
            raise Boom()
    assert calls == ["committed"]


def test_context_refuses_second_transaction():
    handle = TransactionHandle(AsyncSession())
    tx = RequestContext().with_transaction(handle)
    with pytest.raises(TransactionError):
        tx.with_transaction(TransactionHandle(AsyncSession()))


def test_handle_closes_once():
    handle = TransactionHandle(AsyncSession())
    handle.close()
    with pytest.raises(TransactionError):
        handle.close()


# ---------------------------------------------------------------------------
# session_scope
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_session_scope_without_transaction_commits(session_factory, ctx):
    async with session_scope(ctx, session_factory) as session:
        session.add(_user(1))

    repo = UserRepository(session_factory)
    assert await repo.count(ctx) == 1


@pytest.mark.asyncio
async def test_session_scope_reuses_transaction_session(session_factory, ctx):
    tm = TransactionManager(session_factory)
    async with tm.transaction(ctx) as tx:
        async with session_scope(tx, session_factory) as session:
            assert session is tx.transaction.session


@pytest.mark.asyncio
async def test_repository_not_found_is_domain_error(session_factory, ctx):
    repo = UserRepository(session_factory)
    with pytest.raises(UserNotFoundError):
        await repo.get_by_id(ctx, 12345)
