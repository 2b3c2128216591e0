"""Service that recreates stored entries missing on disk."""

from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from minidrive.services import FileService, TreeService
from minidrive.sync.utils import RestoreReport
from minidrive.tree import DirectoryNode, FileNode, Node


class RestoreService:
    """
    Recreates on disk the directories and files that only exist in the store.

    Existing disk entries are never overwritten. A failure on one entry is
    logged and only that entry (and, for a directory, its contents) is
    skipped.
    """

    def __init__(self, tree_service: TreeService, file_service: FileService):
        self.tree_service = tree_service
        self.file_service = file_service

    @staticmethod
    def target_path(root_path: Path, node: Node) -> Path:
        """Disk location of ``node`` below the mirrored directory."""
        return root_path.joinpath(*node.relative_parts)

    async def restore_tree(self, disk_root: Path | str) -> RestoreReport:
        """Restore everything reachable from the mirror root."""
        report = RestoreReport()
        root_path = self.file_service.normalize(disk_root)

        root = await self.tree_service.load_root()
        if root is None:
            logger.info("Store is empty, nothing to restore")
            return report

        await self.restore_directory(root, root_path, report)

        if report.total:
            logger.info(
                f"Restored {len(report.directories)} directories and "
                f"{len(report.files)} files into {root_path}"
            )
        if report.errors:
            logger.warning(f"{len(report.errors)} entries could not be restored")
        return report

    async def restore_directory(
        self, directory: DirectoryNode, root_path: Path, report: RestoreReport
    ) -> None:
        for child in directory.sorted_directories():
            try:
                target = self.target_path(root_path, child)
                if await self.file_service.ensure_directory(target):
                    report.directories.add(child.relative_path)
                await self.restore_directory(child, root_path, report)
            except Exception as e:
                logger.error(f"Failed to restore directory {child.path_with_name}: {e}")
                report.errors[child.relative_path] = str(e)

        if not directory.files:
            return
        try:
            # the files of one directory share a transaction
            async with self.tree_service.transaction() as session:
                for file in directory.sorted_files():
                    await self.restore_file(file, root_path, report, session=session)
        except SQLAlchemyError as e:
            logger.error(f"Failed to restore files of {directory.path_with_name}: {e}")
            report.errors[directory.relative_path or directory.path_with_name] = str(e)

    async def restore_file(
        self,
        file: FileNode,
        disk_root: Path | str,
        report: Optional[RestoreReport] = None,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """Write one stored file to disk unless something already exists there.

        Returns:
            True if the file was written
        """
        root_path = self.file_service.normalize(disk_root)
        target = self.target_path(root_path, file)
        relative_path = file.relative_path

        try:
            if await self.file_service.exists(target):
                return False

            content = await self.tree_service.read_content(file, session=session)
            if len(content) != file.size:
                logger.warning(
                    f"{relative_path}: stored size {file.size} but content has {len(content)} bytes"
                )
            if await self.file_service.write_file(target, content) is None:
                return False
        except Exception as e:
            logger.error(f"Failed to restore file {file.path_with_name}: {e}")
            if session is not None and isinstance(e, SQLAlchemyError):
                # leave the shared transaction usable for the next file
                await session.rollback()
            if report is not None:
                report.errors[relative_path] = str(e)
            return False

        logger.debug(f"Restored file: {relative_path}")
        if report is not None:
            report.files.add(relative_path)
        return True
