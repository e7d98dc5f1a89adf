"""
Domain error taxonomy.

Every error raised by repositories and services is a ``DomainError``
subclass.  The *kind* decides the HTTP status; ``code`` is the stable,
localizable message key returned to clients.  Storage-specific failures
never cross the repository boundary: "no row" becomes a ``NotFoundError``
subclass and anything else becomes ``InternalError`` chained to the
driver exception.
"""


class DomainError(Exception):
    kind: str = "internal"
    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------

class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404
    code = "not_found"
    default_message = "not found"


class ForbiddenError(DomainError):
    kind = "forbidden"
    status_code = 403
    code = "forbidden"
    default_message = "forbidden"


class ConflictError(DomainError):
    kind = "conflict"
    status_code = 409
    code = "conflict"
    default_message = "conflict"


class ValidationError(DomainError):
    kind = "validation"
    status_code = 400
    code = "validation_failed"
    default_message = "validation failed"


class UnauthorizedError(DomainError):
    kind = "unauthorized"
    status_code = 401
    code = "unauthorized"
    default_message = "unauthorized"


class InternalError(DomainError):
    pass


class TransactionError(InternalError):
    code = "transaction_failed"
    default_message = "transaction failed"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    default_message = "user not found"


class UserAlreadyExistsError(ConflictError):
    code = "user_already_exists"
    default_message = "user already exists"


class InvalidUsernameError(ValidationError):
    code = "invalid_username"
    default_message = "username must be between 3 and 100 characters"


class InvalidEmailError(ValidationError):
    code = "invalid_email"
    default_message = "invalid email"


class InvalidPasswordError(ValidationError):
    code = "invalid_password"
    default_message = "password must be at least 6 characters"


class UserForbiddenError(ForbiddenError):
    code = "user_forbidden"
    default_message = "you can only modify your own account"


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class PostNotFoundError(NotFoundError):
    code = "post_not_found"
    default_message = "post not found"


class PostForbiddenError(ForbiddenError):
    code = "post_forbidden"
    default_message = "you can only modify your own posts"


class InvalidTitleError(ValidationError):
    code = "invalid_title"
    default_message = "title must be between 1 and 255 characters"


class InvalidContentError(ValidationError):
    code = "invalid_content"
    default_message = "content must not be empty"


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentNotFoundError(NotFoundError):
    code = "comment_not_found"
    default_message = "comment not found"


class CommentForbiddenError(ForbiddenError):
    code = "comment_forbidden"
    default_message = "you can only modify your own comments"


# ---------------------------------------------------------------------------
# Auth / concurrency
# ---------------------------------------------------------------------------

class InvalidCredentialsError(UnauthorizedError):
    code = "invalid_credentials"
    default_message = "invalid email or password"


class InvalidTokenError(UnauthorizedError):
    code = "invalid_token"
    default_message = "invalid or expired token"


class ConcurrentUpdateError(ConflictError):
    code = "concurrent_update"
    default_message = "the resource was modified concurrently"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventPublishError(Exception):
    """One or more event handlers failed.  ``errors`` keeps every failure."""

    def __init__(self, event_type: str, errors: list[BaseException]) -> None:
        self.event_type = event_type
        self.errors = list(errors)
        details = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} handler(s) failed for {event_type!r}: {details}")
