"""Watch service for minidrive."""

import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set, Tuple

from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from watchfiles import Change, awatch

from minidrive.config import MirrorConfig
from minidrive.services.exceptions import ScanError
from minidrive.sync.import_service import ImportService
from minidrive.sync.utils import ImportReport

MAX_RECENT_EVENTS = 100


class WatchEvent(BaseModel):
    timestamp: datetime
    path: str
    action: str  # new_directory, new_file, import
    status: str  # success, error
    error: Optional[str] = None


class WatchServiceState(BaseModel):
    # Service status
    running: bool = False
    start_time: datetime = Field(default_factory=datetime.now)
    pid: int = Field(default_factory=os.getpid)

    # Stats
    error_count: int = 0
    last_error: Optional[datetime] = None
    last_scan: Optional[datetime] = None

    # Entry counts
    imported_entries: int = 0
    bytes_imported: int = 0

    # Recent activity
    recent_events: List[WatchEvent] = Field(default_factory=list)

    def add_event(
        self,
        path: str,
        action: str,
        status: str,
        error: Optional[str] = None,
    ) -> WatchEvent:
        event = WatchEvent(
            timestamp=datetime.now(),
            path=path,
            action=action,
            status=status,
            error=error,
        )
        self.recent_events.insert(0, event)
        self.recent_events = self.recent_events[:MAX_RECENT_EVENTS]
        return event

    def record_error(self, error: str):
        self.error_count += 1
        self.add_event(path="", action="import", status="error", error=error)
        self.last_error = datetime.now()


class WatchService:
    """Runs an import pass whenever something changes below the mirrored directory."""

    def __init__(self, import_service: ImportService, config: MirrorConfig, root_path: Path):
        self.import_service = import_service
        self.config = config
        self.root_path = root_path
        self.state = WatchServiceState()
        self.status_path = config.home / "watch-status.json"
        self.status_path.parent.mkdir(parents=True, exist_ok=True)
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self):
        """Watch for disk changes and import them"""
        self.state.running = True
        self.state.start_time = datetime.now()
        await self.write_status()

        logger.info(f"Watching {self.root_path} for changes...")
        try:
            async for changes in awatch(
                self.root_path,
                watch_filter=self.filter_changes,
                debounce=self.config.sync_delay,
                recursive=True,
                stop_event=self._stop_event,
            ):
                # any change triggers a scan of the whole tree
                await self.handle_changes(changes)

        except Exception as e:
            self.state.record_error(str(e))
            await self.write_status()
            raise
        finally:
            self.state.running = False
            await self.write_status()

    async def write_status(self):
        """Write current state to status file"""
        self.status_path.write_text(WatchServiceState.model_dump_json(self.state, indent=2))

    def filter_changes(self, change: Change, path: str) -> bool:
        """Ignore deletions, which are never propagated, and temporary restore files"""
        if change == Change.deleted:
            return False
        name = Path(path).name
        return not (name.startswith(".") and name.endswith(".tmp"))

    async def handle_changes(self, changes: Set[Tuple[Change, str]]) -> Optional[ImportReport]:
        """Process a batch of disk changes"""
        logger.debug(f"handling {len(changes)} changes in {self.root_path} ...")

        report = ImportReport()
        try:
            await self.import_service.import_tree(self.root_path, report)
        except (ScanError, SQLAlchemyError) as e:
            logger.error(f"Import after disk change failed: {e}")
            self.state.record_error(str(e))
            await self.write_status()
            return None
        finally:
            self.state.last_scan = datetime.now()

        self.state.imported_entries += report.total
        self.state.bytes_imported += report.bytes_imported

        for path in sorted(report.new_directories):
            self.state.add_event(path=path, action="new_directory", status="success")
            logger.info(f"New directory: {path}")
        for path in sorted(report.new_files):
            self.state.add_event(path=path, action="new_file", status="success")
            logger.info(f"New file: {path}")
        if not report.saved:
            self.state.record_error("store rejected the imported entries")

        await self.write_status()
        return report
