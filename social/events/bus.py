"""
In-process publish/subscribe bus keyed by event type string.

Design notes
------------
- ``subscribe`` returns a ``Subscription`` token; ``unsubscribe`` takes the
  token back.  Removing a token that is not (or no longer) registered is a
  no-op.
- ``publish`` copies the handler list for the event's type while holding the
  registry lock, then releases it before running any handler.  A slow
  handler therefore never blocks subscribe/unsubscribe or other publishers.
- Handlers run in registration order on the publisher's task.  Coroutine
  handlers are awaited before the next handler starts.  There is no retry
  and no background delivery.
- Every handler runs even if an earlier one fails; the failures are raised
  together as one ``EventPublishError``.
"""
from __future__ import annotations

import inspect
import itertools
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from social.context import RequestContext
from social.errors import EventPublishError
from social.events.types import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[RequestContext, DomainEvent], Union[Awaitable[Any], Any]]

_token_counter = itertools.count(1)


@dataclass(frozen=True, eq=False)
class Subscription:
    """Opaque handle identifying one registration."""

    event_type: str
    handler: EventHandler
    token: int

    def __repr__(self) -> str:
        return f"<Subscription {self.event_type}#{self.token}>"


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def subscribe(self, event_type: str | type[DomainEvent], handler: EventHandler) -> Subscription:
        """Register *handler* for *event_type* and return its subscription."""
        if isinstance(event_type, type):
            event_type = event_type.event_type
        subscription = Subscription(event_type, handler, next(_token_counter))
        with self._lock:
            self._handlers[event_type].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            registered = self._handlers.get(subscription.event_type)
            if not registered:
                return
            # Identity match on the token object, never on the handler.
            self._handlers[subscription.event_type] = [
                s for s in registered if s is not subscription
            ]

    def handlers(self, event_type: str) -> tuple[EventHandler, ...]:
        with self._lock:
            return tuple(s.handler for s in self._handlers.get(event_type, ()))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def publish(self, ctx: RequestContext, event: DomainEvent) -> None:
        event_type = event.event_type
        with self._lock:
            subscriptions = list(self._handlers.get(event_type, ()))

        errors: list[BaseException] = []
        for subscription in subscriptions:
            try:
                result = subscription.handler(ctx, event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.debug("Handler %r failed for %s: %s", subscription, event_type, exc)
                errors.append(exc)

        if errors:
            raise EventPublishError(event_type, errors)
