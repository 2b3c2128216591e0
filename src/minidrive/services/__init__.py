"""Services package."""

from .exceptions import (
    ConfigurationError,
    FileNotFoundInStoreError,
    FileOperationError,
    ScanError,
)
from .file_service import FileService
from .tree_service import TreeService

__all__ = [
    "ConfigurationError",
    "FileNotFoundInStoreError",
    "FileOperationError",
    "ScanError",
    "FileService",
    "TreeService",
]
