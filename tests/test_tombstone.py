"""Tests for tombstone resolution of vanished files."""

import os

import pytest

from syncnest.sync import tombstone as tombstone_module
from syncnest.sync.engine import SyncAction
from syncnest.sync.manifest import Manifest
from syncnest.sync.tombstone import TombstoneResolver

from helpers import sha256_hex, write_file


@pytest.fixture
def manifest():
    return Manifest({"docs/gone.txt": sha256_hex(b"kept")})


@pytest.fixture
def resolver(source, backup, manifest):
    return TombstoneResolver(source.resolve(), backup.resolve(), manifest)


def test_vanished_file_gets_link_to_backup(resolver, source, backup, manifest):
    write_file(backup, "docs/gone.txt", "kept")

    results = list(resolver.resolve(seen=set()))

    link = source / "docs" / "gone.txt"
    assert [r.action for r in results] == [SyncAction.TOMBSTONE]
    assert results[0].message == "docs/gone.txt soft link created"
    assert link.is_symlink()
    assert os.path.realpath(link) == str((backup / "docs" / "gone.txt").resolve())
    assert link.read_text() == "kept"
    assert manifest.get("docs/gone.txt") == sha256_hex(b"kept")


def test_seen_paths_are_left_alone(resolver, source, backup):
    write_file(backup, "docs/gone.txt", "kept")

    assert list(resolver.resolve(seen={"docs/gone.txt"})) == []
    assert not (source / "docs" / "gone.txt").exists()


def test_existing_tombstone_is_not_recreated(resolver, source, backup):
    target = write_file(backup, "docs/gone.txt", "kept")
    (source / "docs").mkdir()
    os.symlink(target.resolve(), source / "docs" / "gone.txt")

    results = list(resolver.resolve(seen=set()))

    assert results[0].action == SyncAction.SKIPPED
    assert results[0].message is None


def test_missing_backup_copy_is_reported_and_kept(resolver, source, manifest):
    results = list(resolver.resolve(seen=set()))

    assert results[0].action == SyncAction.SKIPPED
    assert results[0].message == "docs/gone.txt missing from source and backup"
    assert not os.path.lexists(source / "docs" / "gone.txt")
    assert "docs/gone.txt" in manifest


def test_link_creation_can_be_disabled(source, backup, manifest):
    write_file(backup, "docs/gone.txt", "kept")
    resolver = TombstoneResolver(source.resolve(), backup.resolve(), manifest, create_links=False)

    results = list(resolver.resolve(seen=set()))

    assert results[0].message == "docs/gone.txt removed from source, kept in backup"
    assert not os.path.lexists(source / "docs" / "gone.txt")
    assert "docs/gone.txt" in manifest


def test_link_failure_is_logged_and_run_continues(source, backup, monkeypatch):
    manifest = Manifest({"a.txt": "1" * 64, "b.txt": "2" * 64})
    write_file(backup, "a.txt", "a")
    write_file(backup, "b.txt", "b")
    real_symlink = os.symlink

    def picky_symlink(target, link, *args, **kwargs):
        if str(link).endswith("a.txt"):
            raise PermissionError(1, "Operation not permitted")
        return real_symlink(target, link, *args, **kwargs)

    monkeypatch.setattr(tombstone_module.os, "symlink", picky_symlink)
    resolver = TombstoneResolver(source.resolve(), backup.resolve(), manifest)

    results = {r.relative_path: r for r in resolver.resolve(seen=set())}

    assert results["a.txt"].action == SyncAction.FAILED
    assert results["a.txt"].message.startswith("Could not create soft link for a.txt: ")
    assert results["b.txt"].action == SyncAction.TOMBSTONE
    assert manifest.get("a.txt") == "1" * 64


def test_traversal_key_is_rejected_and_dropped(source, backup, tmp_path):
    write_file(tmp_path, "victim.txt", "x")
    manifest = Manifest({"../victim.txt": "1" * 64})
    resolver = TombstoneResolver(source.resolve(), backup.resolve(), manifest)

    results = list(resolver.resolve(seen=set()))

    assert results[0].message == "Rejected path outside backup roots: ../victim.txt"
    assert "../victim.txt" not in manifest
    assert not (tmp_path / "victim.txt").is_symlink()


def test_paths_under_unreadable_directories_are_not_vanished(resolver):
    assert resolver.vanished_paths(seen=set(), unreadable_dirs={"docs"}) == []
    assert resolver.vanished_paths(seen=set(), unreadable_dirs={"doc"}) == ["docs/gone.txt"]
