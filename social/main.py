import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from social.cache import cache
from social.config import configure_logging, settings
from social.errors import DomainError
from social.middleware import RequestContextMiddleware
from social.routers import auth, comments, posts, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    logger.info("Starting social API (env=%s)", settings.APP_ENV)
    await cache.connect()  # the app keeps working without Redis
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Social API",
    description="Users, posts and comments with transactional writes and domain events",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed (request_id=%s): %s",
            request.method, request.url.path, request_id, exc,
            exc_info=exc,
        )
        # Driver details stay in the log.
        body = {"error": exc.code, "message": exc.default_message}
    else:
        logger.warning(
            "%s %s rejected (request_id=%s): %s",
            request.method, request.url.path, request_id, exc.code,
        )
        body = {"error": exc.code, "message": exc.message}
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "validation_failed", "message": "validation failed", "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error on %s %s (request_id=%s)",
        request.method, request.url.path, getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "internal error"},
    )


# Routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0", "cache": cache.stats}
