"""
Database engine and session factory.

PostgreSQL (asyncpg) in deployment; SQLite (aiosqlite) is accepted for
local runs and tests. Sessions never expire objects on commit, so a
document or ledger row returned by a service stays readable after the
transaction that created it.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings


def _engine_options(database_url: str) -> dict:
    options = {"echo": settings.db_echo}
    if database_url.startswith("sqlite"):
        # SQLite has no server-side pool to size
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """
    FastAPI dependency yielding one session per request.

    Services commit or roll back explicitly; anything left open when the
    request ends is rolled back by the session close.
    """
    async with AsyncSessionLocal() as session:
        yield session
