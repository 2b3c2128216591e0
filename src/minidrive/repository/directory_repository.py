"""Repository for mirrored directories."""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from minidrive.models import Directory
from minidrive.repository.repository import Repository


class DirectoryRepository(Repository[Directory]):
    """Repository for Directory rows."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        super().__init__(session_maker, Directory)

    async def find_root(self, session: Optional[AsyncSession] = None) -> Optional[Directory]:
        """Find the parentless directory. The oldest one wins if several exist."""
        query = self.select().where(Directory.parent_id.is_(None)).order_by(Directory.id).limit(1)
        return await self.find_one(query, session=session)

    async def find_ancestors(
        self, directory_id: int, session: Optional[AsyncSession] = None
    ) -> List[Directory]:
        """Return the directory and all its ancestors, root first."""
        chain: List[Directory] = []
        current_id: Optional[int] = directory_id
        async with self.session_scope(session) as s:
            while current_id is not None:
                directory = await self.find_by_id(current_id, session=s)
                if directory is None:
                    break
                chain.append(directory)
                current_id = directory.parent_id
        chain.reverse()
        return chain
