"""Repository for mirrored files."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from minidrive.models import File
from minidrive.repository.repository import Repository


class FileRepository(Repository[File]):
    """Repository for File rows. Loading rows never loads their content."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        super().__init__(session_maker, File)

    async def get_content(
        self, file_id: int, session: Optional[AsyncSession] = None
    ) -> Optional[bytes]:
        """Read the full stored content of a file."""
        query = self.select(File.content).where(File.id == file_id)
        result = await self.execute_query(query, session=session)
        return result.scalar_one_or_none()
