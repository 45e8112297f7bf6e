"""Database engine, session management, and table creation."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import IncidentPilotConfig
from .models.base import Base
from .utils.logging import get_logger

logger = get_logger("database")

_engine = None
_session_factory = None


def _is_sqlite(config: IncidentPilotConfig) -> bool:
    return config.database_url.startswith("sqlite")


def get_engine(config: IncidentPilotConfig):
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        connect_args = {"timeout": 30} if _is_sqlite(config) else {}
        _engine = create_async_engine(
            config.database_url,
            echo=config.debug,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _engine


def get_session_factory(config: IncidentPilotConfig) -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine(config)
        _session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return _session_factory


async def _enable_wal_mode(config: IncidentPilotConfig) -> None:
    """Enable WAL journal mode and busy timeout for on-disk SQLite."""
    if not config.db_wal_mode or not _is_sqlite(config) or ":memory:" in config.database_url:
        return
    engine = get_engine(config)
    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))
        await conn.execute(text(f"PRAGMA busy_timeout={config.db_busy_timeout}"))
        await conn.execute(text(f"PRAGMA synchronous={config.db_synchronous}"))
    logger.info(
        "sqlite_pragmas_applied",
        busy_timeout=config.db_busy_timeout,
        synchronous=config.db_synchronous,
    )


async def create_tables(config: IncidentPilotConfig) -> None:
    """Create all database tables and apply SQLite PRAGMAs."""
    engine = get_engine(config)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await _enable_wal_mode(config)


async def close_engine() -> None:
    """Close the database engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
