"""Tests for the directory and file repositories."""

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from minidrive import db
from minidrive.models import Directory, File


@pytest_asyncio.fixture
async def stored_tree(directory_repository, file_repository):
    """root -> docs -> notes, with one file in docs."""
    root = await directory_repository.create({"name": "/", "parent_id": None})
    docs = await directory_repository.create({"name": "docs", "parent_id": root.id})
    notes = await directory_repository.create({"name": "notes", "parent_id": docs.id})
    todo = await file_repository.create(
        {"name": "todo.txt", "parent_id": docs.id, "size": 4, "content": b"todo"}
    )
    return root, docs, notes, todo


@pytest.mark.asyncio
async def test_create_and_find_by_id(directory_repository, stored_tree):
    root, docs, _, _ = stored_tree
    found = await directory_repository.find_by_id(docs.id)
    assert found is not None
    assert found.name == "docs"
    assert found.parent_id == root.id


@pytest.mark.asyncio
async def test_create_ignores_unknown_columns(directory_repository):
    directory = await directory_repository.create({"name": "/", "parent_id": None, "bogus": 1})
    assert directory.id is not None


@pytest.mark.asyncio
async def test_find_all_and_count(directory_repository, stored_tree):
    directories = await directory_repository.find_all()
    assert [d.name for d in directories] == ["/", "docs", "notes"]
    assert await directory_repository.count() == 3

    page = await directory_repository.find_all(skip=1, limit=1)
    assert [d.name for d in page] == ["docs"]


@pytest.mark.asyncio
async def test_find_root(directory_repository, stored_tree):
    root, *_ = stored_tree
    found = await directory_repository.find_root()
    assert found.id == root.id


@pytest.mark.asyncio
async def test_find_root_empty_store(directory_repository):
    assert await directory_repository.find_root() is None


@pytest.mark.asyncio
async def test_find_ancestors(directory_repository, stored_tree):
    root, docs, notes, _ = stored_tree
    chain = await directory_repository.find_ancestors(notes.id)
    assert [d.id for d in chain] == [root.id, docs.id, notes.id]
    assert await directory_repository.find_ancestors(9999) == []


@pytest.mark.asyncio
async def test_update(directory_repository, stored_tree):
    _, _, notes, _ = stored_tree
    updated = await directory_repository.update(notes.id, {"name": "journal"})
    assert updated.name == "journal"
    assert await directory_repository.update(9999, {"name": "x"}) is None


@pytest.mark.asyncio
async def test_delete(file_repository, stored_tree):
    *_, todo = stored_tree
    assert await file_repository.delete(todo.id) is True
    assert await file_repository.find_by_id(todo.id) is None
    assert await file_repository.delete(todo.id) is False


@pytest.mark.asyncio
async def test_file_content_is_deferred(file_repository, stored_tree):
    *_, todo = stored_tree
    files = await file_repository.find_all()
    assert [(f.name, f.size) for f in files] == [("todo.txt", 4)]
    assert "content" not in files[0].__dict__

    assert await file_repository.get_content(todo.id) == b"todo"
    assert await file_repository.get_content(9999) is None


@pytest.mark.asyncio
async def test_shared_session_rolls_back(directory_repository, session_maker):
    """Operations sharing a session commit or roll back together."""
    with pytest.raises(IntegrityError):
        async with db.scoped_session(session_maker) as session:
            root = await directory_repository.add(Directory(name="/"), session=session)
            await directory_repository.add(Directory(name="a", parent_id=root.id), session=session)
            await directory_repository.add(Directory(name="a", parent_id=root.id), session=session)

    assert await directory_repository.count() == 0


@pytest.mark.asyncio
async def test_file_requires_existing_parent(file_repository):
    with pytest.raises(IntegrityError):
        await file_repository.add(File(name="x", parent_id=42, size=0, content=b""))
