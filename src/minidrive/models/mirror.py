"""Store rows for mirrored directories and files."""

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, deferred, mapped_column

from minidrive.models.base import Base


class Directory(Base):
    """
    A directory of the mirrored tree.

    The mirror root is the single row with no parent. Children reference
    their parent by id; the in-memory tree is rebuilt from these rows.
    """

    __tablename__ = "directories"
    __table_args__ = (UniqueConstraint("parent_id", "name", name="uix_directory_parent_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("directories.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    def __repr__(self) -> str:
        return f"Directory(id={self.id}, parent_id={self.parent_id}, name='{self.name}')"


class File(Base):
    """A file of the mirrored tree with its full binary content."""

    __tablename__ = "files"
    __table_args__ = (UniqueConstraint("parent_id", "name", name="uix_file_parent_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("directories.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # blobs are only read when a file is restored
    content: Mapped[bytes] = deferred(mapped_column(LargeBinary, nullable=False))

    def __repr__(self) -> str:
        return f"File(id={self.id}, parent_id={self.parent_id}, name='{self.name}', size={self.size})"
