"""
Per-request diagnostics.

``install_query_counter`` hooks an engine so every SQL statement bumps a
context-local counter.  ``RequestContextMiddleware`` resets that counter,
assigns the request id, and stamps the response headers.  It is written as
plain ASGI: ``BaseHTTPMiddleware`` would run the endpoint in a child task and
the counter increments would never reach the response.
"""
import time
import uuid
from contextvars import ContextVar

from sqlalchemy import event
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}

query_count_var: ContextVar[int] = ContextVar("query_count", default=0)


def install_query_counter(engine) -> None:
    """Count statements run on *engine* (an ``AsyncEngine``) into ``query_count_var``.

    Call once per engine: ``database.py`` for the application engine and the
    test fixtures for theirs.
    """

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _on_execute(conn, cursor, statement, parameters, context, executemany):
        query_count_var.set(query_count_var.get() + 1)


class RequestContextMiddleware:
    """
    Adds to every HTTP response:

    - ``X-Request-ID``: echoed from the request, or generated.  Also stored as
      ``request.state.request_id`` for the request's ``RequestContext``.
    - ``X-Response-Time-Ms`` and ``X-Query-Count``.
    - The ``SECURITY_HEADERS`` the endpoint did not set itself.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = Headers(scope=scope).get(REQUEST_ID_HEADER, "")[:MAX_REQUEST_ID_LENGTH]
        request_id = incoming or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        query_count_var.set(0)
        started = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                elapsed_ms = (time.perf_counter() - started) * 1000
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
                headers["X-Query-Count"] = str(query_count_var.get())
                for name, value in SECURITY_HEADERS.items():
                    headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_wrapper)
