"""In-memory tree of mirrored directories and files.

Nodes are identified across the disk/store boundary by their path below the
mirror root. A child registers itself in its parent's ``directories`` or
``files`` map as soon as its parent is set, and nothing is ever detached, so
a tree only grows.
"""

import os
from typing import Dict, Iterator, List, Optional, Tuple, Union


def split_path(relative_path: str) -> List[str]:
    """Split a relative path on ``/`` or the platform separator.

    Empty segments are dropped, so leading, trailing and doubled separators
    are ignored.

    Examples:
        >>> split_path("a/b.txt")
        ['a', 'b.txt']
        >>> split_path("/a//b/")
        ['a', 'b']
    """
    if os.sep != "/":
        relative_path = relative_path.replace(os.sep, "/")
    return [segment for segment in relative_path.split("/") if segment]


class Node:
    """Common behaviour of directories and files."""

    def __init__(self, name: str, id: Optional[int] = None):
        self.name = name
        self.id = id
        self._parent: Optional["DirectoryNode"] = None

    @property
    def parent(self) -> Optional["DirectoryNode"]:
        return self._parent

    @parent.setter
    def parent(self, parent: Optional["DirectoryNode"]) -> None:
        self._parent = parent
        if parent is not None:
            self._register(parent)

    def _register(self, parent: "DirectoryNode") -> None:
        raise NotImplementedError

    @property
    def path(self) -> str:
        """Full path of the containing directory, ending with a separator."""
        if self._parent is None:
            return ""
        parent_path = self._parent.path_with_name
        if parent_path == os.sep:
            return parent_path
        return parent_path + os.sep

    @property
    def path_with_name(self) -> str:
        return self.path + self.name

    @property
    def relative_parts(self) -> Tuple[str, ...]:
        """Names from just below the mirror root down to this node."""
        parts: List[str] = []
        node: Optional[Node] = self
        while node is not None and node.parent is not None:
            parts.append(node.name)
            node = node.parent
        return tuple(reversed(parts))

    @property
    def relative_path(self) -> str:
        return "/".join(self.relative_parts)

    def __str__(self) -> str:
        return self.name


class FileNode(Node):
    """A mirrored file.

    ``size`` is the byte length read at import time. ``content`` holds the
    bytes of a freshly imported file; nodes loaded from the store leave it
    as None and the content is read from the store when needed.
    """

    def __init__(
        self,
        name: str,
        size: int,
        content: Optional[bytes] = None,
        parent: Optional["DirectoryNode"] = None,
        id: Optional[int] = None,
    ):
        super().__init__(name, id)
        self.size = size
        self.content = content
        self.parent = parent

    def _register(self, parent: "DirectoryNode") -> None:
        parent.files[self.name] = self

    def __repr__(self) -> str:
        return f"FileNode(id={self.id}, name='{self.name}', size={self.size})"


class DirectoryNode(Node):
    """A mirrored directory with its subdirectories and files keyed by name."""

    def __init__(
        self,
        name: str,
        parent: Optional["DirectoryNode"] = None,
        id: Optional[int] = None,
    ):
        super().__init__(name, id)
        self.directories: Dict[str, DirectoryNode] = {}
        self.files: Dict[str, FileNode] = {}
        self.parent = parent

    def _register(self, parent: "DirectoryNode") -> None:
        parent.directories[self.name] = self

    @property
    def is_root(self) -> bool:
        return self._parent is None

    def get_size(self) -> int:
        """Number of direct children, directories and files together."""
        return len(self.directories) + len(self.files)

    def _descend(self, segments: List[str], create: bool) -> Optional["DirectoryNode"]:
        directory = self
        for segment in segments:
            child = directory.directories.get(segment)
            if child is None:
                if not create:
                    return None
                child = DirectoryNode(segment, parent=directory)
            directory = child
        return directory

    def add_file(self, relative_path: str, file: FileNode) -> None:
        """Attach ``file`` below this directory at ``relative_path``.

        Missing intermediate directories are created. Nothing is attached if
        the target directory already has a file with the same name.
        """
        segments = split_path(relative_path)
        if not segments:
            raise ValueError("relative_path must name the file")

        directory = self._descend(segments[:-1], create=True)
        if file.name not in directory.files:
            file.parent = directory

    def add_directory(self, relative_path: str, directory: "DirectoryNode") -> None:
        """Attach ``directory`` below this directory at ``relative_path``.

        Missing intermediate directories are created. Nothing is attached if
        a same-named subdirectory already exists there.
        """
        segments = split_path(relative_path)
        if not segments:
            raise ValueError("relative_path must name the directory")

        parent = self._descend(segments[:-1], create=True)
        if directory.name not in parent.directories:
            directory.parent = parent

    def find_directory(self, relative_path: str) -> Optional["DirectoryNode"]:
        return self._descend(split_path(relative_path), create=False)

    def find_file(self, relative_path: str) -> Optional[FileNode]:
        segments = split_path(relative_path)
        if not segments:
            return None
        directory = self._descend(segments[:-1], create=False)
        if directory is None:
            return None
        return directory.files.get(segments[-1])

    def exists_file(self, relative_path: str) -> bool:
        return self.find_file(relative_path) is not None

    def exists_directory(self, relative_path: str) -> bool:
        segments = split_path(relative_path)
        if not segments:
            return False
        directory = self._descend(segments[:-1], create=False)
        if directory is None:
            return False
        return segments[-1] in directory.directories

    def sorted_directories(self) -> List["DirectoryNode"]:
        return [self.directories[name] for name in sorted(self.directories)]

    def sorted_files(self) -> List[FileNode]:
        return [self.files[name] for name in sorted(self.files)]

    def walk(self) -> Iterator[Union["DirectoryNode", FileNode]]:
        """Yield every node below this one, each directory before its contents."""
        for directory in self.sorted_directories():
            yield directory
            yield from directory.walk()
        yield from self.sorted_files()

    def __repr__(self) -> str:
        return f"DirectoryNode(id={self.id}, name='{self.name}', size={self.get_size()})"
