from fastapi import Depends, Header, Query, Request

from social.cache import cache
from social.config import settings
from social.container import Container
from social.context import RequestContext
from social.database import async_session
from social.errors import UnauthorizedError

_container: Container | None = None


def get_container() -> Container:
    """Return the process-wide container, building it on first use.

    Tests replace this dependency with a container bound to their own
    database.
    """
    global _container
    if _container is None:
        _container = Container(async_session, cache)
    return _container


class PaginationParams:
    """
    Reusable FastAPI dependency that parses ``limit`` / ``offset``.

    Attributes
    ----------
    limit:
        Page size, clamped to ``settings.MAX_PAGE_SIZE`` so an oversized
        request still succeeds with the maximum page.
    offset:
        Number of rows to skip.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items to return (values above the maximum are clamped).",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of items to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = offset


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.strip():
        return None
    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    # A bare token without the scheme is accepted as well.
    return authorization.strip()


def get_request_context(request: Request) -> RequestContext:
    """Anonymous context for public endpoints."""
    return RequestContext(request_id=getattr(request.state, "request_id", None))


def get_current_user_context(
    ctx: RequestContext = Depends(get_request_context),
    authorization: str | None = Header(None),
    container: Container = Depends(get_container),
) -> RequestContext:
    """Context for endpoints that require a valid bearer token."""
    token = _bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("missing authorization header")
    user_id, _email = container.auth.validate_token(token)
    return ctx.with_user(user_id)
