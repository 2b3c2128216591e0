"""The synchronization daemon: startup pass plus the two background loops."""

import asyncio
from pathlib import Path
from typing import List, Tuple

from loguru import logger

from minidrive.deps import MirrorServices
from minidrive.sync.notification_listener import NotificationListener
from minidrive.sync.utils import ImportReport, RestoreReport
from minidrive.sync.watch_service import WatchService


class MirrorDaemon:
    """
    Keeps the mirrored directory and the store convergent.

    On start the store is first restored to disk, then the disk is imported
    into the store. The disk watcher and the notification listener then run
    as independent tasks until ``stop`` is called.
    """

    def __init__(self, services: MirrorServices, root_path: Path):
        self.services = services
        self.root_path = root_path
        self.watch_service = WatchService(services.import_service, services.config, root_path)
        self.listener = NotificationListener(
            services.channel,
            services.tree_service,
            services.restore_service,
            root_path,
            poll_interval=services.config.poll_interval,
        )
        self.tasks: List[asyncio.Task] = []

    async def synchronize(self) -> Tuple[RestoreReport, ImportReport]:
        """Run one restore pass followed by one import pass."""
        restore_report = await self.services.restore_service.restore_tree(self.root_path)
        import_report = ImportReport()
        await self.services.import_service.import_tree(self.root_path, import_report)
        return restore_report, import_report

    async def start(self) -> None:
        await self.synchronize()
        self.tasks = [
            asyncio.create_task(self.watch_service.run(), name="disk-watcher"),
            asyncio.create_task(self.listener.run(), name="notification-listener"),
        ]
        logger.info(f"Mirroring {self.root_path}")

    async def stop(self) -> None:
        """Signal both loops and wait for them to finish."""
        self.watch_service.stop()
        self.listener.stop()
        if not self.tasks:
            return

        results = await asyncio.gather(*self.tasks, return_exceptions=True)
        for task, result in zip(self.tasks, results):
            if isinstance(result, Exception):
                logger.error(f"{task.get_name()} failed: {result}")
        self.tasks = []

    async def run(self) -> None:
        """Start and keep running until both loops have ended or the task is cancelled."""
        await self.start()
        try:
            await asyncio.wait(self.tasks, return_when=asyncio.ALL_COMPLETED)
        finally:
            await self.stop()
