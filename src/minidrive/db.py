import asyncio
import re
from contextlib import asynccontextmanager
from enum import Enum, auto
from pathlib import Path
from typing import AsyncGenerator, Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
    async_scoped_session,
)
from sqlalchemy.pool import StaticPool

from minidrive.models import Base

NOTIFY_FUNCTION_NAME = "notify_new_file"
NOTIFY_TRIGGER_NAME = "notify_new_file_trigger"

_CHANNEL_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


class DatabaseType(Enum):
    """Types of supported databases."""

    MEMORY = auto()
    FILESYSTEM = auto()
    POSTGRES = auto()

    @classmethod
    def get_db_url(
        cls, db_path: Path, db_type: "DatabaseType", database_url: Optional[str] = None
    ) -> str:
        """Get SQLAlchemy URL for database path."""
        if db_type == cls.MEMORY:
            logger.info("Using in-memory SQLite database")
            return "sqlite+aiosqlite://"

        if db_type == cls.POSTGRES:
            if not database_url:
                raise ValueError("A database_url is required for Postgres")
            return database_url

        return f"sqlite+aiosqlite:///{db_path}"

    @classmethod
    def from_url(cls, database_url: Optional[str]) -> "DatabaseType":
        if database_url and database_url.startswith("postgresql"):
            return cls.POSTGRES
        return cls.FILESYSTEM


def is_sqlite(session: AsyncSession) -> bool:
    return session.bind is not None and session.bind.dialect.name == "sqlite"


def get_scoped_session_factory(
    session_maker: async_sessionmaker[AsyncSession],
) -> async_scoped_session:
    """Create a scoped session factory scoped to current task."""
    return async_scoped_session(session_maker, scopefunc=asyncio.current_task)


@asynccontextmanager
async def scoped_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a scoped session with proper lifecycle management.

    The session is committed when the block exits normally and rolled back
    when it raises.

    Args:
        session_maker: Session maker to create scoped sessions from
    """
    factory = get_scoped_session_factory(session_maker)
    session = factory()
    try:
        if is_sqlite(session):
            await session.execute(text("PRAGMA foreign_keys=ON"))
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
        await factory.remove()


async def init_db(session: AsyncSession):
    """Initialize database with required tables."""
    if is_sqlite(session):
        await session.execute(text("PRAGMA foreign_keys=ON"))
    conn = await session.connection()
    await conn.run_sync(Base.metadata.create_all)
    await session.commit()


def create_engine(
    db_path: Path,
    db_type: DatabaseType = DatabaseType.FILESYSTEM,
    database_url: Optional[str] = None,
) -> AsyncEngine:
    db_url = DatabaseType.get_db_url(db_path, db_type, database_url)
    logger.debug(f"Creating engine for {db_type.name} database")

    if db_type == DatabaseType.POSTGRES:
        return create_async_engine(db_url, pool_pre_ping=True)

    if db_type == DatabaseType.MEMORY:
        # every connection has to see the same in-memory database
        return create_async_engine(
            db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(db_url, connect_args={"check_same_thread": False})


@asynccontextmanager
async def engine_session_factory(
    db_path: Path,
    db_type: DatabaseType = DatabaseType.FILESYSTEM,
    init: bool = True,
    database_url: Optional[str] = None,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Create engine and session factory."""
    engine = create_engine(db_path, db_type, database_url)
    try:
        factory = async_sessionmaker(engine, expire_on_commit=False)

        if init:
            logger.debug("Initializing database...")
            async with scoped_session(factory) as db_session:
                await init_db(db_session)

        yield engine, factory
    finally:
        await engine.dispose()


async def create_notification_trigger(engine: AsyncEngine, channel: str) -> bool:
    """Install the function and trigger that announce every inserted file.

    Each row inserted into ``files`` raises ``pg_notify(channel, id)`` once
    the inserting transaction commits. Safe to run repeatedly.

    Returns:
        True if the trigger was installed, False for databases without
        LISTEN/NOTIFY support.
    """
    if engine.dialect.name != "postgresql":
        logger.info(f"{engine.dialect.name} has no notification channel, skipping trigger setup")
        return False

    if not _CHANNEL_NAME.match(channel):
        raise ValueError(f"Invalid notification channel name: {channel!r}")

    create_function = text(
        f"CREATE OR REPLACE FUNCTION {NOTIFY_FUNCTION_NAME}() "
        "RETURNS trigger AS $$ "
        "BEGIN "
        f"PERFORM pg_notify('{channel}', NEW.id::text); "
        "RETURN NEW; "
        "END; "
        "$$ LANGUAGE plpgsql"
    )
    drop_trigger = text(f"DROP TRIGGER IF EXISTS {NOTIFY_TRIGGER_NAME} ON files")
    create_trigger = text(
        f"CREATE TRIGGER {NOTIFY_TRIGGER_NAME} "
        "AFTER INSERT ON files "
        "FOR EACH ROW "
        f"EXECUTE PROCEDURE {NOTIFY_FUNCTION_NAME}()"
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(create_function)
        await conn.execute(drop_trigger)
        await conn.execute(create_trigger)

    logger.info(f"Installed trigger {NOTIFY_TRIGGER_NAME} on channel '{channel}'")
    return True
