"""
Process-wide event subscribers, registered once at startup.

- ``audit`` logs every domain event.
- Post cache invalidation keeps the cache-aside entries in ``CacheManager``
  consistent with committed state.  Comment events also purge the parent
  post's detail entry.  It is only registered when a cache is configured.
"""
import logging

from social.cache import CacheManager
from social.context import RequestContext
from social.events.bus import EventBus, Subscription
from social.events.types import (
    ALL_EVENT_TYPES,
    CommentCreated,
    CommentDeleted,
    CommentUpdated,
    DomainEvent,
    PostCreated,
    PostDeleted,
    PostUpdated,
    UserDeleted,
)

audit_logger = logging.getLogger("social.audit")


def audit(ctx: RequestContext, event: DomainEvent) -> None:
    audit_logger.info(
        "%s %s (request_id=%s, actor=%s)",
        event.event_type,
        event.model_dump_json(exclude={"occurred_at"}),
        ctx.request_id,
        ctx.user_id,
    )


def post_cache_invalidator(cache: CacheManager):
    async def invalidate(ctx: RequestContext, event: DomainEvent) -> None:
        post_id = getattr(event, "post_id", None)
        await cache.invalidate_post(post_id)

    return invalidate


def register_subscribers(bus: EventBus, cache: CacheManager | None = None) -> list[Subscription]:
    subscriptions = [bus.subscribe(event_type, audit) for event_type in ALL_EVENT_TYPES]
    if cache is None:
        return subscriptions

    invalidate = post_cache_invalidator(cache)
    for event_type in (
        PostCreated,
        PostUpdated,
        PostDeleted,
        CommentCreated,
        CommentUpdated,
        CommentDeleted,
        # A deleted author's posts drop out of the cached list pages.
        UserDeleted,
    ):
        subscriptions.append(bus.subscribe(event_type, invalidate))
    return subscriptions
