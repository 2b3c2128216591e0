"""Construction of the store client and the services built on it."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from minidrive import db
from minidrive.config import MirrorConfig
from minidrive.db import DatabaseType
from minidrive.repository import DirectoryRepository, FileRepository
from minidrive.services import FileService, TreeService
from minidrive.sync.import_service import ImportService
from minidrive.sync.notifications import (
    LocalNotificationChannel,
    NotificationChannel,
    PostgresNotificationChannel,
)
from minidrive.sync.restore_service import RestoreService


@dataclass
class MirrorServices:
    config: MirrorConfig
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    channel: NotificationChannel
    file_service: FileService
    tree_service: TreeService
    import_service: ImportService
    restore_service: RestoreService


def get_notification_channel(config: MirrorConfig, db_type: DatabaseType) -> NotificationChannel:
    if db_type == DatabaseType.POSTGRES:
        return PostgresNotificationChannel(config.channel, config.database_url)
    return LocalNotificationChannel(config.channel)


@asynccontextmanager
async def mirror_services(
    config: MirrorConfig, db_type: Optional[DatabaseType] = None
) -> AsyncGenerator[MirrorServices, None]:
    """Open the store and build every service on top of one session maker."""
    db_type = db_type or DatabaseType.from_url(config.database_url)

    async with db.engine_session_factory(
        db_path=config.database_path, db_type=db_type, database_url=config.database_url
    ) as (engine, session_maker):
        channel = get_notification_channel(config, db_type)
        # a store without triggers gets its notifications from the tree service
        notifier = channel.publish if isinstance(channel, LocalNotificationChannel) else None

        file_service = FileService()
        tree_service = TreeService(
            DirectoryRepository(session_maker),
            FileRepository(session_maker),
            notifier=notifier,
        )

        yield MirrorServices(
            config=config,
            engine=engine,
            session_maker=session_maker,
            channel=channel,
            file_service=file_service,
            tree_service=tree_service,
            import_service=ImportService(tree_service, file_service),
            restore_service=RestoreService(tree_service, file_service),
        )
