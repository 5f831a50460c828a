from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from peopledesk.core.config import settings


def create_engine_for_url(database_url: str, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Build an async engine for the given URL.

    PostgreSQL gets the pooled production configuration:
    - pool_pre_ping: verify connections are alive before use
    - pool_recycle: recycle connections after 1 hour to prevent DB-side timeouts
    SQLite (dev/tests) uses a single shared connection so ":memory:" databases
    survive across sessions.
    """
    echo = settings.SQLALCHEMY_ECHO if echo is None else echo
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=30,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Deployments use the Alembic migrations instead."""
    # Import all models so Base.metadata is complete
    from peopledesk.db.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection(engine: AsyncEngine) -> bool:
    """
    Verify database connectivity. Used by health checks.
    Returns True if connection is successful, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
