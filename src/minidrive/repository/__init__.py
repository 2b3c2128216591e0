from .repository import Repository
from .directory_repository import DirectoryRepository
from .file_repository import FileRepository

__all__ = ["Repository", "DirectoryRepository", "FileRepository"]
