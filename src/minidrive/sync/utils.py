"""Types and utilities for file sync."""

from dataclasses import dataclass, field
from typing import Dict, Set


@dataclass
class ImportReport:
    """Entries found on disk that were unknown to the store.

    Attributes:
        new_directories: Relative paths of imported directories
        new_files: Relative paths of imported files
        bytes_imported: Total size of the imported files
        saved: Whether the store accepted the additions
    """

    new_directories: Set[str] = field(default_factory=set)
    new_files: Set[str] = field(default_factory=set)
    bytes_imported: int = 0
    saved: bool = True

    @property
    def total(self) -> int:
        """Total number of imported entries."""
        return len(self.new_directories) + len(self.new_files)


@dataclass
class RestoreReport:
    """Entries known to the store that were recreated on disk.

    Attributes:
        directories: Relative paths of created directories
        files: Relative paths of written files
        errors: Relative path -> error message for skipped entries
    """

    directories: Set[str] = field(default_factory=set)
    files: Set[str] = field(default_factory=set)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """Total number of restored entries."""
        return len(self.directories) + len(self.files)
