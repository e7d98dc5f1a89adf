"""
Shared orchestration for mutating service operations.

A mutating call moves through: validate -> check preconditions -> persist
inside a transaction -> publish one event -> build the response.  A failed
check raises before any transaction is opened.  The event is published only
after the transaction has committed, and a failing subscriber never changes
the outcome of the call.
"""
import logging
from typing import Awaitable, Callable, TypeVar

from social.context import RequestContext
from social.errors import EventPublishError
from social.events import DomainEvent, EventBus
from social.transactions import TransactionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionalService:
    def __init__(
        self,
        event_bus: EventBus | None = None,
        transactions: TransactionManager | None = None,
    ) -> None:
        self.event_bus = event_bus
        self.transactions = transactions

    async def _persist(self, ctx: RequestContext, fn: Callable[[RequestContext], Awaitable[T]]) -> T:
        """Run *fn* atomically, or directly on *ctx* without a transaction manager."""
        if self.transactions is None:
            return await fn(ctx)
        return await self.transactions.with_transaction(ctx, fn)

    async def _publish(self, ctx: RequestContext, event: DomainEvent) -> None:
        """
        Publish *event* once its data is committed.

        When the caller's own transaction is still open (the call joined it),
        publication is queued until that transaction commits.
        """
        if self.event_bus is None:
            return
        if ctx.in_transaction:
            handle = ctx.transaction
            outer_ctx = ctx.without_transaction()

            async def deferred() -> None:
                await self._publish(outer_ctx, event)

            handle.after_commit(deferred)
            return
        try:
            await self.event_bus.publish(ctx, event)
        except EventPublishError as exc:
            logger.warning("Event %s published with handler errors: %s", event.event_type, exc)
