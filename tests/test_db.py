"""Tests for database setup."""

from pathlib import Path

import pytest
from sqlalchemy import inspect

from minidrive import db
from minidrive.db import DatabaseType


def test_database_type_from_url():
    assert DatabaseType.from_url(None) == DatabaseType.FILESYSTEM
    assert DatabaseType.from_url("sqlite+aiosqlite:///x.db") == DatabaseType.FILESYSTEM
    assert DatabaseType.from_url("postgresql+asyncpg://u:p@h/db") == DatabaseType.POSTGRES


def test_get_db_url():
    path = Path("/tmp/minidrive.db")
    assert DatabaseType.get_db_url(path, DatabaseType.MEMORY) == "sqlite+aiosqlite://"
    assert DatabaseType.get_db_url(path, DatabaseType.FILESYSTEM) == f"sqlite+aiosqlite:///{path}"
    with pytest.raises(ValueError):
        DatabaseType.get_db_url(path, DatabaseType.POSTGRES)


@pytest.mark.asyncio
async def test_tables_created(engine_factory):
    engine, _ = engine_factory
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    assert {"directories", "files"} <= set(tables)


@pytest.mark.asyncio
async def test_filesystem_database_creates_parent(tmp_path):
    db_path = tmp_path / "data" / "nested" / "minidrive.db"
    async with db.engine_session_factory(db_path=db_path, db_type=DatabaseType.FILESYSTEM):
        pass
    assert db_path.exists()


@pytest.mark.asyncio
async def test_notification_trigger_skipped_on_sqlite(engine_factory):
    engine, _ = engine_factory
    assert await db.create_notification_trigger(engine, "new_file") is False
