"""
Domain events published by the services after a successful commit.

Events are immutable pydantic models.  ``event_type`` is the routing tag
the bus dispatches on; it is a class attribute, not part of the payload.
"""
from datetime import datetime, timezone
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    event_type: ClassVar[str] = "domain_event"

    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


# --- Users ---

class UserCreated(DomainEvent):
    event_type: ClassVar[str] = "user.created"

    user_id: int
    username: str
    email: str


class UserUpdated(DomainEvent):
    event_type: ClassVar[str] = "user.updated"

    user_id: int
    username: str
    email: str


class UserDeleted(DomainEvent):
    event_type: ClassVar[str] = "user.deleted"

    user_id: int


# --- Posts ---

class PostCreated(DomainEvent):
    event_type: ClassVar[str] = "post.created"

    post_id: int
    user_id: int
    title: str


class PostUpdated(DomainEvent):
    event_type: ClassVar[str] = "post.updated"

    post_id: int
    user_id: int
    title: str


class PostDeleted(DomainEvent):
    event_type: ClassVar[str] = "post.deleted"

    post_id: int
    user_id: int


# --- Comments ---

class CommentCreated(DomainEvent):
    event_type: ClassVar[str] = "comment.created"

    comment_id: int
    post_id: int
    user_id: int


class CommentUpdated(DomainEvent):
    event_type: ClassVar[str] = "comment.updated"

    comment_id: int
    post_id: int
    user_id: int


class CommentDeleted(DomainEvent):
    event_type: ClassVar[str] = "comment.deleted"

    comment_id: int
    post_id: int
    user_id: int


ALL_EVENT_TYPES: tuple[type[DomainEvent], ...] = (
    UserCreated,
    UserUpdated,
    UserDeleted,
    PostCreated,
    PostUpdated,
    PostDeleted,
    CommentCreated,
    CommentUpdated,
    CommentDeleted,
)
