"""
Unit tests for compendium_index/persist/file_store.py and sqlite_store.py

Tests the flat key/bytes stores the index is persisted to.
"""
import os

import pytest

from compendium_index.errors import PersistenceReadError, PersistenceWriteError
from compendium_index.persist.paths import IndexPaths, ensure_dirs
from compendium_index.persist.sqlite_store import KVStore


KEY = "worlds/w1/enhanced-creature-index.json"


def test_index_paths_are_world_scoped():
    paths = IndexPaths(world_id="w1")
    assert paths.world_dir == "worlds/w1"
    assert paths.index_key == KEY


def test_ensure_dirs_creates_world_dir(tmp_path):
    world_dir = ensure_dirs(tmp_path, IndexPaths(world_id="w1"))
    assert world_dir.is_dir()
    assert world_dir == tmp_path / "worlds" / "w1"


def test_file_store_roundtrip(file_store):
    """Write, read, exists and delete on the directory store."""
    assert not file_store.exists(KEY)

    file_store.write(KEY, b"first")
    assert file_store.exists(KEY)
    assert file_store.read(KEY) == b"first"

    file_store.write(KEY, b"second")
    assert file_store.read(KEY) == b"second"
    assert file_store.list("worlds") == [KEY]

    assert file_store.delete(KEY) is True
    assert file_store.delete(KEY) is False
    assert not file_store.exists(KEY)


def test_file_store_leaves_no_temp_files(file_store):
    """Atomic writes rename their temp file over the target."""
    file_store.write(KEY, b"data")
    world_dir = file_store.root / "worlds" / "w1"
    assert sorted(os.listdir(world_dir)) == ["enhanced-creature-index.json"]


def test_file_store_failed_write_keeps_previous(file_store, monkeypatch):
    """A write that fails mid-way leaves the old artifact intact."""
    file_store.write(KEY, b"old")

    def broken_replace(src, dst):
        raise OSError("rename failed")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(PersistenceWriteError):
        file_store.write(KEY, b"new")

    monkeypatch.undo()
    assert file_store.read(KEY) == b"old"
    world_dir = file_store.root / "worlds" / "w1"
    assert sorted(os.listdir(world_dir)) == ["enhanced-creature-index.json"]


def test_file_store_read_missing_raises(file_store):
    with pytest.raises(PersistenceReadError):
        file_store.read(KEY)


def test_file_store_rejects_escaping_keys(file_store):
    with pytest.raises(PersistenceWriteError):
        file_store.write("../outside.json", b"x")
    with pytest.raises(PersistenceWriteError):
        file_store.delete("../outside.json")
    with pytest.raises(PersistenceReadError):
        file_store.exists("../outside.json")


def test_kvstore_roundtrip(kv):
    """Write, read, exists and delete on the SQLite store."""
    assert not kv.exists(KEY)
    kv.write(KEY, b"payload")
    assert kv.exists(KEY)
    assert kv.read(KEY) == b"payload"

    kv.write(KEY, b"replaced")
    assert kv.read(KEY) == b"replaced"

    assert kv.delete(KEY) is True
    assert kv.delete(KEY) is False

    with pytest.raises(PersistenceReadError):
        kv.read(KEY)


def test_kvstore_stats(kv):
    kv.write("a", b"12345")
    kv.write("b", b"123")

    stats = kv.stats()
    assert stats["count"] == 2
    assert stats["total_bytes"] == 8
    assert stats["newest_ts"] >= stats["oldest_ts"] > 0


def test_kvstore_persists_across_connections(tmp_path):
    db = tmp_path / "index.db"
    with KVStore(db) as kv:
        kv.write(KEY, b"durable")
    with KVStore(db) as kv:
        assert kv.read(KEY) == b"durable"
