"""
Request-scoped context threaded explicitly through services and repositories.

A ``RequestContext`` is immutable: deriving a context (for example to attach
an open transaction) returns a new instance and leaves the caller's context
untouched.  At most one transaction is attached at a time.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from social.errors import TransactionError


class TransactionHandle:
    """Opaque reference to one open storage transaction.

    Only ``TransactionManager`` creates and closes handles.  Once closed
    (committed or rolled back) the handle refuses to hand out its session.
    """

    __slots__ = ("_session", "_closed", "_after_commit")

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._closed = False
        self._after_commit: list[Callable[[], Awaitable[None]]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def session(self) -> AsyncSession:
        if self._closed:
            raise TransactionError("transaction handle used after it was closed")
        return self._session

    def close(self) -> None:
        if self._closed:
            raise TransactionError("transaction handle closed twice")
        self._closed = True

    def after_commit(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Queue *callback* to run once the transaction has committed."""
        if self._closed:
            raise TransactionError("transaction already finished")
        self._after_commit.append(callback)

    def pop_after_commit(self) -> list[Callable[[], Awaitable[None]]]:
        callbacks, self._after_commit = self._after_commit, []
        return callbacks


@dataclass(frozen=True)
class RequestContext:
    user_id: int | None = None
    request_id: str | None = None
    transaction: TransactionHandle | None = field(default=None, repr=False, compare=False)

    @property
    def in_transaction(self) -> bool:
        return self.transaction is not None and not self.transaction.closed

    def with_user(self, user_id: int | None) -> RequestContext:
        return replace(self, user_id=user_id)

    def with_transaction(self, handle: TransactionHandle) -> RequestContext:
        if self.in_transaction:
            raise TransactionError("context already carries an open transaction")
        return replace(self, transaction=handle)

    def without_transaction(self) -> RequestContext:
        return replace(self, transaction=None)


def background_context() -> RequestContext:
    """Context for work that does not originate from an HTTP request."""
    return RequestContext()
