import os

import pytest

from filebrowser import resolver as resolver_module
from filebrowser.request import RequestPath, decode_path
from filebrowser.resolver import (
    Directory,
    DirectoryEntry,
    File,
    FileSystemResolver,
    Missing,
    sort_entries,
)


def names(target):
    return [entry.name for entry in target.entries]


def test_sort_directories_first_then_by_name():
    entries = [
        DirectoryEntry("b.txt", False, 1, 0.0),
        DirectoryEntry("zz", True, 0, 0.0),
        DirectoryEntry("a.txt", False, 1, 0.0),
        DirectoryEntry("sub", True, 0, 0.0),
    ]
    assert [e.name for e in sort_entries(entries)] == ["sub", "zz", "a.txt", "b.txt"]


def test_sort_uses_code_point_order():
    entries = [
        DirectoryEntry("b", False, 1, 0.0),
        DirectoryEntry("B", False, 1, 0.0),
        DirectoryEntry("a", False, 1, 0.0),
    ]
    assert [e.name for e in sort_entries(entries)] == ["B", "a", "b"]


def test_root_directory(browse_root):
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath())
    assert isinstance(target, Directory)
    assert target.path == str(browse_root)
    assert names(target) == ["photos", "notes.txt"]
    photos, notes = target.entries
    assert photos.is_dir and not notes.is_dir
    assert notes.size == 2048


def test_directory_listing_is_not_recursive(browse_root):
    (browse_root / "photos" / "cat.jpg").write_bytes(b"meow")
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath())
    assert names(target) == ["photos", "notes.txt"]


def test_file(browse_root):
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath(("notes.txt",)))
    assert isinstance(target, File)
    assert target.name == "notes.txt"
    assert target.size == 2048
    assert target.modified == pytest.approx(1700000000.0)


def test_missing(browse_root):
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath(("nope",)))
    assert target == Missing(RequestPath(("nope",)))


def test_nul_byte_is_missing(browse_root):
    target = FileSystemResolver(str(browse_root)).resolve(decode_path("/bad%00name"))
    assert isinstance(target, Missing)


def test_percent_encoded_name_matches_literal_name(browse_root):
    (browse_root / "a b").write_text("hello")
    resolver = FileSystemResolver(str(browse_root))
    encoded = resolver.resolve(decode_path("/a%20b"))
    literal = resolver.resolve(RequestPath(("a b",)))
    assert isinstance(encoded, File)
    assert encoded.path == literal.path == os.path.join(str(browse_root), "a b")


def test_traversal_stays_under_root(tmp_path):
    root = tmp_path / "served"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("top secret")
    resolver = FileSystemResolver(str(root))

    target = resolver.resolve(decode_path("/../secret.txt"))
    assert isinstance(target, Missing)
    assert resolver.absolute_path(decode_path("/../../secret.txt")) == str(root / "secret.txt")


def test_broken_symlink_is_skipped(browse_root):
    os.symlink(str(browse_root / "gone"), str(browse_root / "dangling"))
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath())
    assert names(target) == ["photos", "notes.txt"]


def test_unreadable_directory_is_missing(browse_root, monkeypatch):
    def refuse(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(resolver_module.os, "scandir", refuse)
    target = FileSystemResolver(str(browse_root)).resolve(RequestPath(("photos",)))
    assert isinstance(target, Missing)


def test_relative_root_is_made_absolute(browse_root, monkeypatch):
    monkeypatch.chdir(browse_root)
    resolver = FileSystemResolver(".")
    assert resolver.root == str(browse_root)
    assert isinstance(resolver.resolve(RequestPath(("photos",))), Directory)


ODD_MTIME = 1234567890.0


def picky_mtime(timestamp):
    return None if timestamp == ODD_MTIME else timestamp


@pytest.mark.parametrize("timestamp", [2 ** 40, 1e20, -1e20])
def test_displayable_mtime_rejects_out_of_range(timestamp):
    assert resolver_module.displayable_mtime(timestamp) is None


def test_displayable_mtime_keeps_normal_times():
    assert resolver_module.displayable_mtime(1700000000.0) == 1700000000.0


def test_entry_with_unrepresentable_mtime_is_skipped(browse_root, monkeypatch):
    odd = browse_root / "odd.txt"
    odd.write_text("odd")
    os.utime(str(odd), (ODD_MTIME, ODD_MTIME))
    monkeypatch.setattr(resolver_module, "displayable_mtime", picky_mtime)

    target = FileSystemResolver(str(browse_root)).resolve(RequestPath())
    assert isinstance(target, Directory)
    assert names(target) == ["photos", "notes.txt"]


def test_far_future_mtime_on_disk_is_skipped(browse_root):
    odd = browse_root / "odd.txt"
    odd.write_text("odd")
    try:
        os.utime(str(odd), (2 ** 40, 2 ** 40))
    except (OSError, OverflowError):
        pytest.skip("filesystem refuses far-future times")
    if resolver_module.displayable_mtime(os.stat(str(odd)).st_mtime) is not None:
        pytest.skip("filesystem clamps far-future times")

    target = FileSystemResolver(str(browse_root)).resolve(RequestPath())
    assert names(target) == ["photos", "notes.txt"]


def test_file_with_unrepresentable_mtime_has_no_modified(browse_root, monkeypatch):
    os.utime(str(browse_root / "notes.txt"), (ODD_MTIME, ODD_MTIME))
    monkeypatch.setattr(resolver_module, "displayable_mtime", picky_mtime)

    target = FileSystemResolver(str(browse_root)).resolve(RequestPath(("notes.txt",)))
    assert isinstance(target, File)
    assert target.size == 2048
    assert target.modified is None


def test_segments_leaving_root_are_missing(tmp_path):
    root = tmp_path / "served"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("top secret")
    resolver = FileSystemResolver(str(root))

    assert isinstance(resolver.resolve(RequestPath(("..", "secret.txt"))), Missing)
    assert isinstance(resolver.resolve(RequestPath((str(tmp_path),))), Missing)
    assert not resolver.is_within_root(str(tmp_path / "secret.txt"))
    assert resolver.is_within_root(str(root / "a" / "b"))
