"""Background loop restoring files announced on the notification channel."""

import asyncio
from pathlib import Path
from typing import List, Optional

from loguru import logger

from minidrive.services import TreeService
from minidrive.sync.notifications import NotificationChannel
from minidrive.sync.restore_service import RestoreService

DEFAULT_POLL_INTERVAL = 0.5


class NotificationListener:
    """
    Polls a notification channel and restores every announced file.

    Each payload carries the id of a newly stored file. The loop runs until
    ``stop`` is called; an unexpected error is logged and ends the loop.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        tree_service: TreeService,
        restore_service: RestoreService,
        root_path: Path,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.channel = channel
        self.tree_service = tree_service
        self.restore_service = restore_service
        self.root_path = root_path
        self.poll_interval = poll_interval
        self.running = False
        self.restored_files = 0
        self.last_error: Optional[str] = None
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Subscribe to the channel and poll it until stopped."""
        self.running = True
        try:
            await self.channel.subscribe()
            logger.info(f"Listening for new files on channel '{self.channel.name}'")

            while not self._stop_event.is_set():
                payloads = await self.channel.poll()
                if payloads:
                    self.restored_files += await self.handle_notifications(payloads)
                await self._sleep()

        except Exception as e:
            self.last_error = str(e)
            logger.exception(f"Notification listener stopped: {e}")
        finally:
            self.running = False
            await self.channel.close()
            logger.info("Notification listener finished")

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass

    @staticmethod
    def parse_ids(payloads: List[str]) -> List[int]:
        file_ids = []
        for payload in payloads:
            try:
                file_ids.append(int(payload))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring notification with non-numeric payload: {payload!r}")
        return file_ids

    async def handle_notifications(self, payloads: List[str]) -> int:
        """Restore the files named by ``payloads`` inside one transaction.

        Returns:
            Number of files written to disk
        """
        restored = 0
        async with self.tree_service.transaction() as session:
            for file_id in self.parse_ids(payloads):
                file = await self.tree_service.load_file(file_id, session=session)
                if file is None:
                    logger.warning(f"Notified file id={file_id} not found in store")
                    continue
                if await self.restore_service.restore_file(file, self.root_path, session=session):
                    logger.info(f"Restored new file {file.relative_path}")
                    restored += 1
        return restored
