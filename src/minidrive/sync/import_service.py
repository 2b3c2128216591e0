"""Service that imports new disk entries into the store."""

from pathlib import Path
from typing import Iterator, Optional, Set

from loguru import logger

from minidrive.services import FileService, TreeService
from minidrive.services.exceptions import FileOperationError, ScanError
from minidrive.sync.utils import ImportReport
from minidrive.tree import DirectoryNode, FileNode


class ImportService:
    """
    Imports directories and files found on disk but unknown to the store.

    Entries are matched by their path below the mirrored root. A known path
    is never imported again, even if the bytes on disk have changed since.
    """

    def __init__(self, tree_service: TreeService, file_service: FileService):
        self.tree_service = tree_service
        self.file_service = file_service

    def iter_entries(self, directory: Path, visited: Optional[Set[Path]] = None) -> Iterator[Path]:
        """Yield every entry below ``directory``, each directory before its contents.

        Symlinked directories are followed once; a link back into an already
        visited directory is yielded but not descended into.

        Raises:
            ScanError: If a directory cannot be listed
        """
        if visited is None:
            visited = {directory.resolve()}

        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise ScanError(f"Cannot list directory '{directory}': {e}")

        for entry in entries:
            yield entry
            if entry.is_dir():
                real_path = entry.resolve()
                if real_path in visited:
                    logger.warning(f"Not descending into {entry}: already visited {real_path}")
                    continue
                visited.add(real_path)
                yield from self.iter_entries(entry, visited)

    async def import_tree(
        self, disk_root: Path | str, report: Optional[ImportReport] = None
    ) -> DirectoryNode:
        """Add every unknown entry below ``disk_root`` to the mirror tree and save it.

        Args:
            disk_root: Mirrored directory on disk
            report: Optional report to fill with what was imported

        Returns:
            The mirror root

        Raises:
            ScanError: If an entry is neither a regular file nor a directory,
                or cannot be read. Entries added before the error are saved.
        """
        report = report if report is not None else ImportReport()
        root_path = self.file_service.normalize(disk_root)
        if not root_path.is_dir():
            raise ScanError(f"'{root_path}' is not a directory")

        logger.debug(f"Importing {root_path}")
        root = await self.tree_service.get_or_create_root()

        try:
            await self._scan(root_path, root, report)
        except ScanError:
            report.saved = await self.tree_service.save(root)
            raise

        report.saved = await self.tree_service.save(root)
        if report.total:
            logger.info(
                f"Imported {len(report.new_directories)} directories and "
                f"{len(report.new_files)} files ({report.bytes_imported} bytes) from {root_path}"
            )
        else:
            logger.debug(f"Nothing new under {root_path}")
        return root

    async def _scan(self, root_path: Path, root: DirectoryNode, report: ImportReport) -> None:
        for entry in self.iter_entries(root_path):
            relative_path = entry.relative_to(root_path).as_posix()

            if entry.is_dir():
                if not root.exists_directory(relative_path):
                    root.add_directory(relative_path, DirectoryNode(entry.name))
                    report.new_directories.add(relative_path)
                    logger.debug(f"New directory: {relative_path}")

            elif entry.is_file():
                if not root.exists_file(relative_path):
                    try:
                        content = await self.file_service.read_file(entry)
                    except FileOperationError as e:
                        raise ScanError(f"Cannot read '{entry}': {e}")
                    root.add_file(relative_path, FileNode(entry.name, len(content), content))
                    report.new_files.add(relative_path)
                    report.bytes_imported += len(content)
                    logger.debug(f"New file: {relative_path} ({len(content)} bytes)")

            else:
                raise ScanError(f"'{entry}' is neither a directory nor a file")
