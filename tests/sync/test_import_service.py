"""Tests for importing disk entries into the store."""

import os

import pytest

from minidrive.services.exceptions import ScanError
from minidrive.sync.utils import ImportReport
from minidrive.tree import DirectoryNode, split_path


@pytest.mark.asyncio
async def test_import_fresh_tree(import_service, tree_service, file_repository, sample_tree):
    """Importing into an empty store creates the root and every entry."""
    report = ImportReport()
    root = await import_service.import_tree(sample_tree, report)

    assert report.saved
    assert report.new_directories == {"a", "a/b"}
    assert report.new_files == {"a/b/x.txt", "readme.md", "empty.bin"}
    assert report.bytes_imported == len(b"hello") + len(b"# mirror\n")

    assert root.id is not None
    stored = await tree_service.load_root()
    assert stored.find_file("a/b/x.txt").size == 5
    assert stored.find_file("empty.bin").size == 0
    assert await file_repository.count() == 3


@pytest.mark.asyncio
async def test_import_empty_directory(import_service, directory_repository, file_repository, mirror_dir):
    """An empty directory still gets a stored mirror root."""
    root = await import_service.import_tree(mirror_dir)

    assert root.get_size() == 0
    assert await directory_repository.count() == 1
    assert await file_repository.count() == 0
    stored_root = await directory_repository.find_root()
    assert stored_root.id == root.id


@pytest.mark.asyncio
async def test_import_is_idempotent(import_service, directory_repository, file_repository, sample_tree):
    await import_service.import_tree(sample_tree)
    directories = await directory_repository.count()
    files = await file_repository.count()

    report = ImportReport()
    await import_service.import_tree(sample_tree, report)

    assert report.total == 0
    assert await directory_repository.count() == directories
    assert await file_repository.count() == files


@pytest.mark.asyncio
async def test_import_only_new_entries(import_service, file_repository, sample_tree):
    """A second import picks up only what appeared since."""
    await import_service.import_tree(sample_tree)

    (sample_tree / "a" / "y.txt").write_bytes(b"why")
    (sample_tree / "c").mkdir()

    report = ImportReport()
    await import_service.import_tree(sample_tree, report)

    assert report.new_files == {"a/y.txt"}
    assert report.new_directories == {"c"}
    assert await file_repository.count() == 4


@pytest.mark.asyncio
async def test_modified_content_is_not_reimported(import_service, tree_service, sample_tree):
    await import_service.import_tree(sample_tree)
    (sample_tree / "a" / "b" / "x.txt").write_bytes(b"changed content")

    report = ImportReport()
    await import_service.import_tree(sample_tree, report)
    assert report.total == 0

    root = await tree_service.load_root()
    file = root.find_file("a/b/x.txt")
    assert await tree_service.read_content(file) == b"hello"


@pytest.mark.asyncio
async def test_deleted_entries_stay_in_store(import_service, tree_service, sample_tree):
    await import_service.import_tree(sample_tree)
    (sample_tree / "readme.md").unlink()

    await import_service.import_tree(sample_tree)

    root = await tree_service.load_root()
    assert root.exists_file("readme.md")


@pytest.mark.asyncio
async def test_import_binary_content(import_service, tree_service, mirror_dir):
    content = os.urandom(4096)
    (mirror_dir / "blob.bin").write_bytes(content)

    root = await import_service.import_tree(mirror_dir)
    file = root.find_file("blob.bin")
    assert await tree_service.read_content(file) == content


@pytest.mark.asyncio
async def test_import_missing_root(import_service, tmp_path):
    with pytest.raises(ScanError):
        await import_service.import_tree(tmp_path / "missing")


@pytest.mark.asyncio
async def test_import_unscannable_entry(import_service, tree_service, mirror_dir):
    """An entry that is neither a file nor a directory aborts the pass."""
    (mirror_dir / "a.txt").write_bytes(b"a")
    os.symlink(mirror_dir / "nowhere", mirror_dir / "z-broken-link")

    with pytest.raises(ScanError):
        await import_service.import_tree(mirror_dir)

    # entries scanned before the error are kept
    root = await tree_service.load_root()
    assert root.exists_file("a.txt")


@pytest.mark.asyncio
async def test_symlink_loop_is_not_followed(import_service, mirror_dir):
    (mirror_dir / "a").mkdir()
    (mirror_dir / "a" / "x.txt").write_bytes(b"x")
    os.symlink(mirror_dir, mirror_dir / "a" / "loop")

    report = ImportReport()
    await import_service.import_tree(mirror_dir, report)

    assert report.new_directories == {"a", "a/loop"}
    assert report.new_files == {"a/x.txt"}


def test_iter_entries_parents_first(import_service, sample_tree):
    entries = [p.relative_to(sample_tree).as_posix() for p in import_service.iter_entries(sample_tree)]
    assert entries == ["a", "a/b", "a/b/x.txt", "empty.bin", "readme.md"]


@pytest.mark.asyncio
async def test_import_idempotent_when_directory_check_looks_at_files(
    import_service, tree_service, directory_repository, file_repository, sample_tree, monkeypatch
):
    """Attaching is a no-op for known names, so the store never grows twice."""

    def exists_directory_in_files(self, relative_path):
        segments = split_path(relative_path)
        if not segments:
            return False
        directory = self._descend(segments[:-1], create=False)
        return directory is not None and segments[-1] in directory.files

    monkeypatch.setattr(DirectoryNode, "exists_directory", exists_directory_in_files)

    await import_service.import_tree(sample_tree)
    directories = await directory_repository.count()
    files = await file_repository.count()

    await import_service.import_tree(sample_tree)

    assert directories == 3
    assert await directory_repository.count() == directories
    assert await file_repository.count() == files
    root = await tree_service.load_root()
    assert root.find_file("a/b/x.txt").size == 5
