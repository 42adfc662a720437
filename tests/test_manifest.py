"""Tests for manifest loading and persistence."""

import json
import os

import pytest

from syncnest.sync import manifest as manifest_module
from syncnest.sync.exceptions import CorruptManifest, PersistenceError
from syncnest.sync.manifest import Manifest, ManifestStore

from helpers import read_manifest, sha256_hex


def test_load_without_document_returns_empty(backup):
    manifest = ManifestStore(backup).load()

    assert len(manifest) == 0
    assert manifest.paths() == set()


def test_save_then_load_preserves_entries(backup):
    entries = {
        "a/b.txt": sha256_hex(b"hello"),
        "notes.md": sha256_hex(b"notes"),
    }
    store = ManifestStore(backup)
    store.save(Manifest(entries))

    assert store.load().as_dict() == entries
    assert read_manifest(backup) == entries


def test_saved_document_is_pretty_printed(backup):
    ManifestStore(backup).save(Manifest({"a.txt": sha256_hex(b"a")}))

    text = (backup / "manifest.json").read_text(encoding="utf-8")
    assert text.startswith("{\n  ")
    assert text.endswith("}\n")


def test_load_save_round_trip_is_stable(backup):
    store = ManifestStore(backup)
    store.save(Manifest({"z.txt": "1" * 64, "a.txt": "2" * 64}))
    first = (backup / "manifest.json").read_bytes()

    store.save(store.load())

    assert (backup / "manifest.json").read_bytes() == first


def test_custom_filename(backup):
    store = ManifestStore(backup, "state.json")
    store.save(Manifest({"x": "0" * 64}))

    assert (backup / "state.json").exists()
    assert manifest_module.load(backup, "state.json").get("x") == "0" * 64
    assert store.reserved_paths() == {"state.json", "state.json.tmp"}


@pytest.mark.parametrize("content", [
    "{not json",
    "[1, 2, 3]",
    '{"a.txt": 42}',
    '"just a string"',
])
def test_unparsable_document_raises_corrupt_manifest(backup, content):
    (backup / "manifest.json").write_text(content, encoding="utf-8")

    with pytest.raises(CorruptManifest):
        ManifestStore(backup).load()


def test_save_to_missing_directory_raises_persistence_error(tmp_path):
    store = ManifestStore(tmp_path / "does-not-exist")

    with pytest.raises(PersistenceError):
        store.save(Manifest({"a": "b"}))


def test_failed_replace_keeps_previous_manifest(backup, monkeypatch):
    store = ManifestStore(backup)
    store.save(Manifest({"old.txt": "1" * 64}))

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(PersistenceError, match="disk full"):
        store.save(Manifest({"new.txt": "2" * 64}))

    assert read_manifest(backup) == {"old.txt": "1" * 64}
    assert not store.temp_path.exists()


def test_undecodable_file_name_round_trips(backup):
    name = os.fsdecode(b"bad\xff.txt")
    store = ManifestStore(backup)
    store.save(Manifest({name: "1" * 64, "good.txt": "2" * 64}))

    assert store.load() == Manifest({name: "1" * 64, "good.txt": "2" * 64})
    assert not store.temp_path.exists()


def test_encoding_failure_removes_temp_file(backup, monkeypatch):
    store = ManifestStore(backup)
    store.save(Manifest({"old.txt": "1" * 64}))

    def failing_dump(obj, fp, **kwargs):
        fp.write("{")
        raise UnicodeEncodeError("utf-8", "\udcff", 0, 1, "surrogates not allowed")

    monkeypatch.setattr(manifest_module.json, "dump", failing_dump)

    with pytest.raises(PersistenceError, match="surrogates not allowed"):
        store.save(Manifest({"new.txt": "2" * 64}))

    assert read_manifest(backup) == {"old.txt": "1" * 64}
    assert not store.temp_path.exists()


def test_manifest_builder_operations():
    manifest = Manifest()
    manifest.record("a.txt", "1" * 64)
    manifest.record("b.txt", "2" * 64)
    manifest.record("a.txt", "3" * 64)
    manifest.discard("b.txt")
    manifest.discard("missing.txt")

    assert "a.txt" in manifest
    assert "b.txt" not in manifest
    assert manifest.get("a.txt") == "3" * 64
    assert list(manifest) == ["a.txt"]
    assert manifest == Manifest({"a.txt": "3" * 64})


def test_module_level_save_and_load(backup):
    manifest_module.save(backup, Manifest({"k": "v" * 64}))

    assert json.loads((backup / "manifest.json").read_text())["k"] == "v" * 64
    assert manifest_module.load(backup).get("k") == "v" * 64
