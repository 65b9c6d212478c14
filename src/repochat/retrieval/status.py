"""
Per-repository index status on top of a key/value store.

The status flag is read-then-written without a transaction. Two concurrent
index requests for the same repository may both run; upserts are
idempotent by id, so the duplicate work is wasteful but safe.
"""

import json
import logging
import os
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class RepositoryIndexStatus(str, Enum):
    """Lifecycle of a repository in the vector index."""

    ABSENT = "absent"
    INDEXING = "indexing"
    INDEXED = "indexed"


class KeyValueStore(Protocol):
    """Durable string key/value store with optional expiry."""

    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store; entries with a TTL expire lazily on read."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and time.time() >= expires_at:
                del self._data[key]
                return None
            return value

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        with self._lock:
            self._data[key] = (value, expires_at)


class JsonFileKeyValueStore(InMemoryKeyValueStore):
    """
    Key/value store persisted to a single JSON file.

    Used by the CLI so that index status survives between invocations.
    Every put rewrites the file through a temporary sibling and os.replace,
    under the store lock, so readers never see a partial file. Expired
    entries are pruned from each snapshot.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            with self.path.open(encoding="utf-8") as f:
                raw = json.load(f)
            self._data = {key: (entry["value"], entry.get("expires_at")) for key, entry in raw.items()}

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        now = time.time()
        expires_at = now + ttl if ttl else None
        with self._lock:
            self._data[key] = (value, expires_at)
            self._data = {
                k: (v, expiry)
                for k, (v, expiry) in self._data.items()
                if expiry is None or expiry > now
            }
            snapshot = {k: {"value": v, "expires_at": expiry} for k, (v, expiry) in self._data.items()}
            self._write(snapshot)

    def _write(self, snapshot: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise


def status_key(repository_id: str) -> str:
    """Key under which a repository's index status is stored."""
    return f"index-status:{repository_id}"


def get_index_status(store: KeyValueStore, repository_id: str) -> RepositoryIndexStatus:
    """Read a repository's status; missing or unknown values read as ABSENT."""
    value = store.get(status_key(repository_id))
    if value is None:
        return RepositoryIndexStatus.ABSENT
    try:
        return RepositoryIndexStatus(value)
    except ValueError:
        logger.warning(f"Unknown index status {value!r} for {repository_id}, treating as absent")
        return RepositoryIndexStatus.ABSENT


def set_index_status(
    store: KeyValueStore,
    repository_id: str,
    status: RepositoryIndexStatus,
    ttl: Optional[int] = None,
) -> None:
    """Write a repository's status."""
    store.put(status_key(repository_id), status.value, ttl)
