"""Service for disk operations on the mirrored directory."""

import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from minidrive.services.exceptions import FileOperationError


class FileService:
    """
    Service for handling file operations on disk.

    Features:
    - Whole-file binary reads and writes
    - Atomic, non-replacing writes through a hidden temporary file
    - Directory creation with missing ancestors
    - Error handling
    """

    @staticmethod
    def normalize(path: Path | str) -> Path:
        """Absolute, normalized form of ``path`` without resolving symlinks."""
        return Path(os.path.normpath(os.path.abspath(os.fspath(path))))

    async def exists(self, path: Path) -> bool:
        """
        Check if a file or directory exists.

        Raises:
            FileOperationError: If the check itself fails
        """
        try:
            return path.exists()
        except Exception as e:
            logger.error(f"Failed to check file existence {path}: {e}")
            raise FileOperationError(f"Failed to check file existence: {e}")

    async def ensure_directory(self, path: Path) -> bool:
        """
        Ensure directory exists, creating it and its ancestors if necessary.

        Returns:
            True if the directory had to be created

        Raises:
            FileOperationError: If directory creation fails
        """
        if path.is_dir():
            return False
        try:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"created directory: {path}")
            return True
        except Exception as e:
            logger.error(f"Failed to create directory {path}: {e}")
            raise FileOperationError(f"Failed to create directory {path}: {e}")

    async def read_file(self, path: Path) -> bytes:
        """
        Read the full binary content of a file.

        Raises:
            FileOperationError: If read fails
        """
        try:
            content = path.read_bytes()
            logger.debug(f"read file: {path}, {len(content)} bytes")
            return content
        except Exception as e:
            logger.error(f"Failed to read file {path}: {e}")
            raise FileOperationError(f"Failed to read file {path}: {e}")

    async def write_file(self, path: Path, content: bytes) -> Optional[int]:
        """
        Create a file atomically, creating parent directories.

        The content goes to a uniquely named hidden temporary file first,
        which is then hard linked to ``path``. An existing entry at ``path``
        is never replaced.

        Returns:
            Number of bytes written, or None if ``path`` already existed

        Raises:
            FileOperationError: If write fails
        """
        await self.ensure_directory(path.parent)

        try:
            fd, temp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
        except Exception as e:
            logger.error(f"Failed to write file {path}: {e}")
            raise FileOperationError(f"Failed to write file {path}: {e}")

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.link(temp_path, path)
        except FileExistsError:
            logger.debug(f"not writing {path}: it already exists")
            return None
        except Exception as e:
            logger.error(f"Failed to write file {path}: {e}")
            raise FileOperationError(f"Failed to write file {path}: {e}")
        finally:
            temp_path.unlink(missing_ok=True)

        logger.debug(f"wrote file: {path}, {len(content)} bytes")
        return len(content)
