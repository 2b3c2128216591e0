"""Models package for minidrive."""

from minidrive.models.base import Base
from minidrive.models.mirror import Directory, File

__all__ = [
    "Base",
    "Directory",
    "File",
]
