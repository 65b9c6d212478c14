"""
Unit tests for retrieval.status module.
"""

import json
import threading

import pytest

from repochat.retrieval import status as status_module
from repochat.retrieval.status import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    RepositoryIndexStatus,
    get_index_status,
    set_index_status,
    status_key,
)


@pytest.mark.unit
class TestIndexStatus:
    """Tests for status helpers."""

    def test_status_key(self):
        assert status_key("octocat/hello") == "index-status:octocat/hello"

    def test_missing_status_is_absent(self, kv_store):
        assert get_index_status(kv_store, "octocat/hello") is RepositoryIndexStatus.ABSENT

    def test_set_and_get(self, kv_store):
        set_index_status(kv_store, "octocat/hello", RepositoryIndexStatus.INDEXED)

        assert get_index_status(kv_store, "octocat/hello") is RepositoryIndexStatus.INDEXED
        assert kv_store.get("index-status:octocat/hello") == "indexed"

    def test_status_is_per_repository(self, kv_store):
        set_index_status(kv_store, "octocat/hello", RepositoryIndexStatus.INDEXED)

        assert get_index_status(kv_store, "octocat/other") is RepositoryIndexStatus.ABSENT

    def test_unknown_value_reads_as_absent(self, kv_store):
        kv_store.put("index-status:octocat/hello", "corrupted")

        assert get_index_status(kv_store, "octocat/hello") is RepositoryIndexStatus.ABSENT


@pytest.mark.unit
class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore class."""

    def test_get_missing_key(self):
        assert InMemoryKeyValueStore().get("nope") is None

    def test_entry_without_ttl_never_expires(self, monkeypatch):
        store = InMemoryKeyValueStore()
        monkeypatch.setattr(status_module.time, "time", lambda: 1000.0)
        store.put("k", "v")

        monkeypatch.setattr(status_module.time, "time", lambda: 10_000_000.0)

        assert store.get("k") == "v"

    def test_entry_expires_after_ttl(self, monkeypatch):
        store = InMemoryKeyValueStore()
        monkeypatch.setattr(status_module.time, "time", lambda: 1000.0)
        store.put("k", "v", ttl=60)

        monkeypatch.setattr(status_module.time, "time", lambda: 1059.0)
        assert store.get("k") == "v"

        monkeypatch.setattr(status_module.time, "time", lambda: 1060.0)
        assert store.get("k") is None


@pytest.mark.unit
class TestJsonFileKeyValueStore:
    """Tests for JsonFileKeyValueStore class."""

    def test_put_writes_file(self, tmp_path):
        path = tmp_path / "state" / "status.json"
        store = JsonFileKeyValueStore(path)

        store.put("index-status:octocat/hello", "indexed")

        data = json.loads(path.read_text())
        assert data["index-status:octocat/hello"] == {"value": "indexed", "expires_at": None}

    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "status.json"
        set_index_status(JsonFileKeyValueStore(path), "octocat/hello", RepositoryIndexStatus.INDEXED)

        reopened = JsonFileKeyValueStore(path)

        assert get_index_status(reopened, "octocat/hello") is RepositoryIndexStatus.INDEXED

    def test_ttl_survives_reopen(self, tmp_path, monkeypatch):
        path = tmp_path / "status.json"
        monkeypatch.setattr(status_module.time, "time", lambda: 1000.0)
        JsonFileKeyValueStore(path).put("k", "v", ttl=10)

        monkeypatch.setattr(status_module.time, "time", lambda: 1011.0)

        assert JsonFileKeyValueStore(path).get("k") is None

    def test_failed_write_keeps_previous_file(self, tmp_path, monkeypatch):
        path = tmp_path / "status.json"
        store = JsonFileKeyValueStore(path)
        store.put("index-status:octocat/hello", "indexed")

        def partial_dump(obj, f, **kwargs):
            f.write('{"index-status:octocat/other": {"val')
            raise OSError("disk full")

        monkeypatch.setattr(status_module.json, "dump", partial_dump)

        with pytest.raises(OSError):
            store.put("index-status:octocat/other", "indexing", ttl=900)

        monkeypatch.undo()
        data = json.loads(path.read_text())
        assert data == {"index-status:octocat/hello": {"value": "indexed", "expires_at": None}}
        assert not (tmp_path / "status.json.tmp").exists()
        reopened = JsonFileKeyValueStore(path)
        assert get_index_status(reopened, "octocat/hello") is RepositoryIndexStatus.INDEXED

    def test_concurrent_puts_leave_valid_json(self, tmp_path):
        path = tmp_path / "status.json"
        store = JsonFileKeyValueStore(path)

        def writer(worker: int) -> None:
            for i in range(20):
                store.put(f"repo:owner{worker}/repo{i}", "x" * (worker * 50 + i), ttl=3600)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        data = json.loads(path.read_text())
        assert len(data) == 80

    def test_expired_entries_are_pruned_on_put(self, tmp_path, monkeypatch):
        path = tmp_path / "status.json"
        monkeypatch.setattr(status_module.time, "time", lambda: 1000.0)
        store = JsonFileKeyValueStore(path)
        store.put("repo:octocat/hello", "{}", ttl=3600)
        store.put("index-status:octocat/hello", "indexed")

        monkeypatch.setattr(status_module.time, "time", lambda: 5000.0)
        store.put("repo:octocat/other", "{}", ttl=3600)

        data = json.loads(path.read_text())
        assert set(data) == {"index-status:octocat/hello", "repo:octocat/other"}
