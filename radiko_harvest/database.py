import logging
from contextlib import asynccontextmanager
from pathlib import Path
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy import event

from radiko_harvest.config import settings
from radiko_harvest.models import Base

logger = logging.getLogger(__name__)

# Engine and session factory - initialized in init_db() during startup
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _create_session_factory(engine):
    """Create async session factory from engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory (initialized in init_db)"""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() during startup.")
    return _session_factory


async def init_db(database_path: str | None = None) -> None:
    """Initialize database schema and engine"""
    global _engine, _session_factory

    database_path = database_path or settings.database_path
    logger.info(f"Initializing artifact database at {database_path}")

    try:
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as exc:
        raise RuntimeError(f"Cannot access database path '{database_path}': {exc}") from exc

    _engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}",
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    # Readers run concurrently with the harvest writer
    def configure_sqlite(dbapi_conn, _):
        """Configure SQLite connection parameters"""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    event.listen(_engine.sync_engine, "connect", configure_sqlite)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _session_factory = _create_session_factory(_engine)

    logger.info("Artifact database initialized successfully")


async def close_db() -> None:
    """Close database connections on shutdown"""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


@asynccontextmanager
async def session_scope(*, begin: bool = True) -> AsyncIterator[AsyncSession]:
    """
    Provide an async session context manager with optional automatic transaction handling.

    Args:
        begin: When True (default), wrap the session in `session.begin()` for auto commit/rollback.
               When False, the session is used for reads only and never committed.
    """
    session_factory = get_session_factory()

    async with session_factory() as session:
        if begin:
            async with session.begin():
                yield session
        else:
            yield session
