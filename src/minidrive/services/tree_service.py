"""Service that moves the mirror tree between the store and memory."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Dict, List, Optional, Sequence

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from minidrive import db
from minidrive.models import Directory, File
from minidrive.repository import DirectoryRepository, FileRepository
from minidrive.services.exceptions import FileNotFoundInStoreError
from minidrive.tree import DirectoryNode, FileNode

Notifier = Callable[[str], None]


def build_tree(
    directories: Sequence[Directory], files: Sequence[File]
) -> Optional[DirectoryNode]:
    """Link directory and file rows into a tree and return its root.

    Rows whose parent is missing are left out.
    """
    nodes: Dict[int, DirectoryNode] = {row.id: DirectoryNode(row.name, id=row.id) for row in directories}

    root: Optional[DirectoryNode] = None
    for row in directories:
        node = nodes[row.id]
        if row.parent_id is None:
            if root is None:
                root = node
            else:
                logger.warning(f"Ignoring extra root directory id={row.id}")
        elif row.parent_id in nodes:
            node.parent = nodes[row.parent_id]
        else:
            logger.warning(f"Directory id={row.id} has unknown parent id={row.parent_id}")

    for row in files:
        parent = nodes.get(row.parent_id)
        if parent is None:
            logger.warning(f"File id={row.id} has unknown parent id={row.parent_id}")
            continue
        FileNode(row.name, row.size, parent=parent, id=row.id)

    return root


class TreeService:
    """
    Loads the mirror tree from the store and persists its new nodes.

    Nodes without an id are new. ``save`` inserts all of them in one
    transaction and hands the ids of inserted files to ``notifier``, which
    plays the part of a database trigger for stores without one.
    """

    def __init__(
        self,
        directory_repository: DirectoryRepository,
        file_repository: FileRepository,
        notifier: Optional[Notifier] = None,
    ):
        self.directory_repository = directory_repository
        self.file_repository = file_repository
        self.notifier = notifier

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        async with db.scoped_session(self.directory_repository.session_maker) as session:
            yield session

    async def load_root(self, session: Optional[AsyncSession] = None) -> Optional[DirectoryNode]:
        """Load the whole tree, without file contents. None if the store is empty."""
        async with self.directory_repository.session_scope(session) as s:
            if await self.directory_repository.find_root(session=s) is None:
                return None
            directories = await self.directory_repository.find_all(session=s)
            files = await self.file_repository.find_all(session=s)

        root = build_tree(directories, files)
        if root is not None:
            logger.debug(f"Loaded mirror tree: {len(directories)} directories, {len(files)} files")
        return root

    async def get_or_create_root(self) -> DirectoryNode:
        """Load the mirror root, or make a new unsaved one named after the separator."""
        root = await self.load_root()
        if root is None:
            logger.info("No mirror root in store, creating one")
            root = DirectoryNode(os.sep)
        return root

    async def save(self, root: DirectoryNode) -> bool:
        """Insert every node of the tree that has no id yet.

        Returns:
            True on commit, False if the transaction failed and was rolled back
        """
        assigned: List[DirectoryNode | FileNode] = []
        new_files: List[FileNode] = []
        try:
            async with self.transaction() as session:
                await self._save_directory(root, session, assigned, new_files)
        except SQLAlchemyError as e:
            logger.error(f"Failed to save mirror tree: {e}")
            for node in assigned:
                node.id = None
            return False

        logger.debug(f"Saved {len(assigned)} new nodes")
        for file in new_files:
            # stored now, read it back from the store when needed
            file.content = None
            if self.notifier is not None:
                self.notifier(str(file.id))
        return True

    async def _save_directory(
        self,
        directory: DirectoryNode,
        session: AsyncSession,
        assigned: List[DirectoryNode | FileNode],
        new_files: List[FileNode],
    ) -> None:
        if directory.id is None:
            parent_id = directory.parent.id if directory.parent is not None else None
            row = await self.directory_repository.add(
                Directory(parent_id=parent_id, name=directory.name), session=session
            )
            directory.id = row.id
            assigned.append(directory)

        pending = []
        for file in directory.sorted_files():
            if file.id is not None:
                continue
            if file.content is None:
                logger.warning(f"Skipping {file.path_with_name}: no content to store")
                continue
            row = File(parent_id=directory.id, name=file.name, size=file.size, content=file.content)
            session.add(row)
            pending.append((file, row))

        if pending:
            await session.flush()
            for file, row in pending:
                file.id = row.id
                assigned.append(file)
                new_files.append(file)

        for child in directory.sorted_directories():
            await self._save_directory(child, session, assigned, new_files)

    async def load_file(
        self, file_id: int, session: Optional[AsyncSession] = None
    ) -> Optional[FileNode]:
        """Load one file with the chain of directories above it.

        The returned node hangs from a fresh root of its own, which is all
        that is needed to derive its path.
        """
        async with self.file_repository.session_scope(session) as s:
            row = await self.file_repository.find_by_id(file_id, session=s)
            if row is None:
                return None
            chain = await self.directory_repository.find_ancestors(row.parent_id, session=s)

        if not chain or chain[0].parent_id is not None:
            logger.warning(f"File id={file_id} is not attached to the mirror root")
            return None

        parent: Optional[DirectoryNode] = None
        for directory in chain:
            parent = DirectoryNode(directory.name, parent=parent, id=directory.id)
        return FileNode(row.name, row.size, parent=parent, id=row.id)

    async def read_content(self, file: FileNode, session: Optional[AsyncSession] = None) -> bytes:
        """Read the full content of a file from the store.

        Raises:
            FileNotFoundInStoreError: If the file has no stored content
        """
        if file.id is None:
            if file.content is None:
                raise FileNotFoundInStoreError(f"{file.path_with_name} was never stored")
            return file.content

        content = await self.file_repository.get_content(file.id, session=session)
        if content is None:
            raise FileNotFoundInStoreError(f"No stored content for file id={file.id}")
        return content
