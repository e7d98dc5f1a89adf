"""
Domain rules that do not depend on storage.

Field validators raise the matching ``ValidationError`` subclass.  The
ownership predicates are pure functions over (owner id, acting user id);
services turn a ``False`` into a forbidden-kind error.
"""
import re
from typing import Protocol

from social.context import RequestContext
from social.errors import (
    InvalidContentError,
    InvalidEmailError,
    InvalidPasswordError,
    InvalidTitleError,
    InvalidUsernameError,
)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
TITLE_MAX_LENGTH = 255

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


def validate_username(username: str) -> str:
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise InvalidUsernameError()
    return username


def validate_email(email: str) -> str:
    if not email or len(email) > EMAIL_MAX_LENGTH or not _EMAIL_RE.match(email):
        raise InvalidEmailError()
    return email


def validate_password(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise InvalidPasswordError()
    return password


def validate_title(title: str) -> str:
    if not 0 < len(title) <= TITLE_MAX_LENGTH:
        raise InvalidTitleError()
    return title


def validate_content(content: str) -> str:
    if not content or not content.strip():
        raise InvalidContentError()
    return content


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip, drop empties and de-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

def can_be_edited_by(owner_id: int, acting_user_id: int | None) -> bool:
    return acting_user_id is not None and owner_id == acting_user_id


def can_be_deleted_by(owner_id: int, acting_user_id: int | None) -> bool:
    return acting_user_id is not None and owner_id == acting_user_id


# ---------------------------------------------------------------------------
# Capabilities consumed across aggregates
# ---------------------------------------------------------------------------

class UserExistenceChecker(Protocol):
    async def exists(self, ctx: RequestContext, user_id: int) -> bool: ...


class PostExistenceChecker(Protocol):
    async def exists(self, ctx: RequestContext, post_id: int) -> bool: ...
