"""
Vector index contract and FAISS-backed implementation.

The pipeline talks to any similarity store through VectorIndexClient:
upserts are idempotent by id and queries return cross-tenant matches,
so callers filter by repository themselves. FAISSVectorIndex provides an
in-process store with metadata persistence alongside the FAISS index.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Sequence

import faiss
import numpy as np
from numpy.typing import NDArray

from repochat.config import settings

logger = logging.getLogger(__name__)

MAX_UPSERT_BATCH = 100


@dataclass
class VectorRecord:
    """A vector with its id and attached metadata."""

    id: str
    vector: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    """A single similarity-search hit."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorIndexClient(Protocol):
    """Contract every vector store backend must satisfy."""

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        """Insert or replace records by id."""
        ...

    def query(self, vector: Sequence[float], top_k: int) -> list[VectorMatch]:
        """Return up to top_k matches ordered by descending score."""
        ...

    def flush(self) -> None:
        """Make every upsert so far durable."""
        ...


def upsert_in_batches(
    index: VectorIndexClient,
    records: Sequence[VectorRecord],
    batch_size: int = MAX_UPSERT_BATCH,
) -> int:
    """
    Upsert records in groups that respect store-side batch limits.

    Args:
        index: Target vector store
        records: Records to write
        batch_size: Records per call (capped at 100)

    Returns:
        Number of records submitted
    """
    batch_size = max(1, min(batch_size, MAX_UPSERT_BATCH))
    for i in range(0, len(records), batch_size):
        index.upsert(records[i : i + batch_size])
    return len(records)


class FAISSVectorIndex:
    """
    FAISS-based vector store keyed by record id.

    Uses IndexFlatIP (inner product) over L2-normalised vectors for cosine
    similarity. Records live in an id-keyed map so re-upserting identical ids
    replaces rather than duplicates; the FAISS index is rebuilt lazily on the
    first query after a write.

    One instance is shared by indexing and answering threads, so every
    read and write of the record map happens under a re-entrant lock.

    Example:
        >>> index = FAISSVectorIndex(dimension=768, path="data/index/vectors")
        >>> index.upsert(records)
        >>> matches = index.query(query_vector, top_k=5)
        >>> index.flush()
    """

    def __init__(self, dimension: int | None = None, path: str | Path | None = None) -> None:
        """
        Initialize an empty index.

        Args:
            dimension: Vector dimension (default from settings)
            path: Base path written by flush(); None keeps the index in memory
        """
        self.dimension = dimension or settings.embedding_dimension
        self.path = Path(path) if path is not None else None
        self._records: dict[str, VectorRecord] = {}
        self._index: faiss.IndexFlatIP | None = None
        self._ids: list[str] = []
        self._dirty = True
        self._lock = threading.RLock()

    @property
    def size(self) -> int:
        """Number of stored vectors."""
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._records

    def ids(self) -> set[str]:
        """All stored record ids."""
        with self._lock:
            return set(self._records)

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        """
        Insert or replace records.

        Raises:
            ValueError: If a vector has the wrong dimension
        """
        for record in records:
            if len(record.vector) != self.dimension:
                raise ValueError(
                    f"Vector {record.id} must have dimension {self.dimension}, "
                    f"got {len(record.vector)}"
                )
        copies = [
            VectorRecord(
                id=record.id,
                vector=[float(v) for v in record.vector],
                metadata=dict(record.metadata),
            )
            for record in records
        ]
        with self._lock:
            for record in copies:
                self._records[record.id] = record
            if copies:
                self._dirty = True

    def query(self, vector: Sequence[float], top_k: int) -> list[VectorMatch]:
        """
        Search for the most similar records.

        Args:
            vector: Query vector of length `dimension`
            top_k: Number of results to return

        Returns:
            Matches sorted by cosine similarity, descending
        """
        query = np.asarray(vector, dtype=np.float32).reshape(1, -1)

        with self._lock:
            if top_k <= 0 or not self._records:
                return []
            if query.shape[1] != self.dimension:
                raise ValueError(
                    f"Query must have dimension {self.dimension}, got {query.shape[1]}"
                )

            index = self._ensure_index()
            k = min(top_k, len(self._ids))
            scores, positions = index.search(_normalize(query), k)

            matches: list[VectorMatch] = []
            for score, position in zip(scores[0], positions[0]):
                if position < 0:
                    continue
                record = self._records[self._ids[position]]
                matches.append(
                    VectorMatch(id=record.id, score=float(score), metadata=dict(record.metadata))
                )
            return matches

    def _ensure_index(self) -> faiss.IndexFlatIP:
        # Callers hold self._lock.
        if self._index is not None and not self._dirty:
            return self._index

        self._ids = list(self._records)
        vectors = np.asarray(
            [self._records[record_id].vector for record_id in self._ids],
            dtype=np.float32,
        ).reshape(len(self._ids), self.dimension)

        index = faiss.IndexFlatIP(self.dimension)
        if len(vectors) > 0:
            index.add(np.ascontiguousarray(_normalize(vectors)))
        self._index = index
        self._dirty = False
        return index

    def save(self, path: str | Path | None = None) -> None:
        """
        Save vectors and metadata to disk.

        Both files are written to temporary siblings and moved into place,
        so a failed save leaves the previous pair intact.

        Args:
            path: Base path for index files (default: self.path, then settings)
        """
        if path is None:
            path = self.path or settings.faiss_index_path

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        index_file = path.with_suffix(".index")
        metadata_file = path.with_suffix(".json")
        index_tmp = Path(str(index_file) + ".tmp")
        metadata_tmp = Path(str(metadata_file) + ".tmp")

        with self._lock:
            try:
                index = self._ensure_index()
                faiss.write_index(index, str(index_tmp))

                records_data = [
                    {"id": record_id, "metadata": self._records[record_id].metadata}
                    for record_id in self._ids
                ]
                with metadata_tmp.open("w", encoding="utf-8") as f:
                    json.dump(
                        {"dimension": self.dimension, "records": records_data},
                        f,
                        indent=2,
                        ensure_ascii=False,
                    )

                os.replace(index_tmp, index_file)
                os.replace(metadata_tmp, metadata_file)
            except Exception:
                index_tmp.unlink(missing_ok=True)
                metadata_tmp.unlink(missing_ok=True)
                raise

    def flush(self) -> None:
        """Persist to self.path; a no-op for in-memory indexes."""
        if self.path is None:
            return
        self.save(self.path)
        logger.info(f"Vector index saved to {self.path} ({self.size} vectors)")

    def load(self, path: str | Path | None = None) -> None:
        """
        Load vectors and metadata from disk.

        Raises:
            FileNotFoundError: If index files don't exist
        """
        if path is None:
            path = self.path or settings.faiss_index_path

        path = Path(path)
        index_file = path.with_suffix(".index")
        if not index_file.exists():
            raise FileNotFoundError(f"Index file not found: {index_file}")
        metadata_file = path.with_suffix(".json")
        if not metadata_file.exists():
            raise FileNotFoundError(f"Metadata file not found: {metadata_file}")

        index = faiss.read_index(str(index_file))
        with metadata_file.open(encoding="utf-8") as f:
            data = json.load(f)

        vectors = index.reconstruct_n(0, index.ntotal) if index.ntotal else []
        records = {
            entry["id"]: VectorRecord(
                id=entry["id"],
                vector=[float(v) for v in vector],
                metadata=entry["metadata"],
            )
            for entry, vector in zip(data["records"], vectors)
        }
        with self._lock:
            self.dimension = int(data.get("dimension", index.d))
            self._records = records
            self._ids = list(records)
            self._index = index
            self._dirty = False
        logger.debug(f"Loaded {len(records)} vectors from {index_file}")

    @classmethod
    def from_disk(cls, path: str | Path | None = None) -> "FAISSVectorIndex":
        """Create an index instance from saved files."""
        index = cls(path=path)
        index.load(path)
        return index


def _normalize(vectors: NDArray[np.float32]) -> NDArray[np.float32]:
    """Normalize rows to unit length for cosine similarity."""
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    # Avoid division by zero
    norms = np.where(norms == 0, 1, norms)
    return (vectors / norms).astype(np.float32)
