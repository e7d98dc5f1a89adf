"""
Test infrastructure for the Social API.

Strategy
--------
- Each test gets its own file-backed SQLite database under ``tmp_path``.  A
  file (rather than ``:memory:`` on a shared StaticPool) gives every session
  its own connection, so an open transaction is really invisible to other
  sessions until it commits and rollback tests mean something.
- Tests build a ``Container`` against that database.  Endpoint tests point
  the app's ``get_container`` dependency at the same container.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager treats a missing client as a permanent miss, so the real
  database path is always exercised.
- Settings are read at import time, so the environment is prepared before
  anything from ``social`` is imported.  Low bcrypt rounds keep hashing fast.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DEBUG"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from social.cache import cache  # noqa: E402
from social.container import Container  # noqa: E402
from social.context import RequestContext  # noqa: E402
from social.database import Base  # noqa: E402
from social.dependencies import get_container  # noqa: E402
from social.main import app  # noqa: E402
from social.middleware import install_query_counter  # noqa: E402
from social.security import TokenIssuer  # noqa: E402

import social.models  # noqa: E402,F401


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file with the full schema."""
    engine_test = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    install_query_counter(engine_test)
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine_test
    await engine_test.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def container(session_factory) -> Container:
    """
    Container without the default subscribers, so the bus only carries what
    a test subscribes itself.
    """
    cache._redis = None
    return Container(session_factory, cache, subscribe_defaults=False)


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(request_id="test")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    The app runs against this test's database through a container that has
    the production subscribers registered (audit log, cache invalidation).
    """
    cache._redis = None
    test_container = Container(session_factory, cache)
    app.dependency_overrides[get_container] = lambda: test_container
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_container, None)
    test_container.close()


@pytest.fixture
def auth_header():
    """Build an ``Authorization`` header for a user id / email pair."""
    issuer = TokenIssuer.from_settings()

    def _header(user_id: int, email: str = "user@example.com") -> dict:
        return {"Authorization": f"Bearer {issuer.issue(user_id, email)}"}

    return _header
