"""Common test fixtures."""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from minidrive import db
from minidrive.config import MirrorConfig
from minidrive.db import DatabaseType
from minidrive.deps import MirrorServices
from minidrive.repository import DirectoryRepository, FileRepository
from minidrive.services import FileService, TreeService
from minidrive.sync.import_service import ImportService
from minidrive.sync.notifications import LocalNotificationChannel
from minidrive.sync.restore_service import RestoreService


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    home = tmp_path / "minidrive-home"
    monkeypatch.setenv("MINIDRIVE_HOME", str(home))
    return home


@pytest.fixture
def mirror_dir(tmp_path) -> Path:
    """The mirrored directory on disk."""
    path = tmp_path / "mirror"
    path.mkdir()
    return path


@pytest.fixture
def other_dir(tmp_path) -> Path:
    """A second, empty directory mirroring the same store."""
    path = tmp_path / "other"
    path.mkdir()
    return path


@pytest.fixture
def app_config(config_home, mirror_dir) -> MirrorConfig:
    """Create test app configuration."""
    return MirrorConfig(home=config_home, directory=mirror_dir, poll_interval=0.01, sync_delay=50)


@pytest_asyncio.fixture(scope="function")
async def engine_factory(
    app_config,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Create a fresh in-memory database for each test."""
    async with db.engine_session_factory(
        db_path=app_config.database_path, db_type=DatabaseType.MEMORY
    ) as (engine, session_maker):
        yield engine, session_maker


@pytest_asyncio.fixture
async def session_maker(engine_factory) -> async_sessionmaker[AsyncSession]:
    """Get session maker for tests."""
    _, session_maker = engine_factory
    return session_maker


## Repositories


@pytest_asyncio.fixture(scope="function")
async def directory_repository(session_maker) -> DirectoryRepository:
    return DirectoryRepository(session_maker)


@pytest_asyncio.fixture(scope="function")
async def file_repository(session_maker) -> FileRepository:
    return FileRepository(session_maker)


## Services


@pytest.fixture
def channel() -> LocalNotificationChannel:
    return LocalNotificationChannel("new_file")


@pytest.fixture
def file_service() -> FileService:
    return FileService()


@pytest_asyncio.fixture
async def tree_service(directory_repository, file_repository, channel) -> TreeService:
    return TreeService(directory_repository, file_repository, notifier=channel.publish)


@pytest_asyncio.fixture
async def import_service(tree_service, file_service) -> ImportService:
    return ImportService(tree_service, file_service)


@pytest_asyncio.fixture
async def restore_service(tree_service, file_service) -> RestoreService:
    return RestoreService(tree_service, file_service)


@pytest_asyncio.fixture
async def mirror_services(
    app_config, engine_factory, channel, file_service, tree_service, import_service, restore_service
) -> MirrorServices:
    engine, session_maker = engine_factory
    return MirrorServices(
        config=app_config,
        engine=engine,
        session_maker=session_maker,
        channel=channel,
        file_service=file_service,
        tree_service=tree_service,
        import_service=import_service,
        restore_service=restore_service,
    )


@pytest.fixture
def sample_tree(mirror_dir) -> Path:
    """A small tree on disk: two files at the root and one nested file."""
    (mirror_dir / "a").mkdir()
    (mirror_dir / "a" / "b").mkdir()
    (mirror_dir / "a" / "b" / "x.txt").write_bytes(b"hello")
    (mirror_dir / "readme.md").write_bytes(b"# mirror\n")
    (mirror_dir / "empty.bin").write_bytes(b"")
    return mirror_dir
