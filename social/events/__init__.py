from social.events.bus import EventBus, EventHandler, Subscription
from social.events.types import (
    ALL_EVENT_TYPES,
    CommentCreated,
    CommentDeleted,
    CommentUpdated,
    DomainEvent,
    PostCreated,
    PostDeleted,
    PostUpdated,
    UserCreated,
    UserDeleted,
    UserUpdated,
)

__all__ = [
    "ALL_EVENT_TYPES",
    "CommentCreated",
    "CommentDeleted",
    "CommentUpdated",
    "DomainEvent",
    "EventBus",
    "EventHandler",
    "PostCreated",
    "PostDeleted",
    "PostUpdated",
    "Subscription",
    "UserCreated",
    "UserDeleted",
    "UserUpdated",
]
