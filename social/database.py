from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from social.config import settings
from social.middleware import install_query_counter

# Application engine, used by ``social.dependencies.get_container`` and
# scripts/seed.py.  Tests build their own engine and session factory and
# override ``get_container``, so this module has no test switch.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

# Services build their response DTOs and events after COMMIT, from the
# objects the transaction returned, so attributes must survive the commit.
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass
