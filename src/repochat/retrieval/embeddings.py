"""
Embedding generation via a remote embedding model.

Turns chunks and queries into vectors. Chunks are embedded with their
file path and line range prepended so vectors carry location context.
Batches run concurrently within a group and sequentially across groups;
a failed chunk is logged and dropped without aborting the batch.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from repochat.config import settings
from repochat.errors import InvalidResponseShape
from repochat.retrieval.chunker import Chunk
from repochat.retrieval.vector_store import VectorRecord

if TYPE_CHECKING:
    from repochat.llm.factory import ModelRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingRecord:
    """A chunk with its embedding and deterministic id."""

    id: str
    vector: list[float]
    chunk: Chunk
    repository_id: str

    def to_vector_record(self) -> VectorRecord:
        """Convert to a vector store record carrying tenant metadata."""
        metadata: dict[str, Any] = {
            "repository_id": self.repository_id,
            "file_path": self.chunk.file_path,
            "start_line": self.chunk.start_line,
            "end_line": self.chunk.end_line,
            "content": self.chunk.content,
        }
        if self.chunk.language:
            metadata["language"] = self.chunk.language
        return VectorRecord(id=self.id, vector=list(self.vector), metadata=metadata)


def build_embedding_text(chunk: Chunk) -> str:
    """Enriched text embedded for a chunk (location header + content)."""
    return f"File: {chunk.file_path}\nLines: {chunk.start_line}-{chunk.end_line}\n\n{chunk.content}"


def make_record_id(repository_id: str, chunk: Chunk, sequence_index: int) -> str:
    """Deterministic record id; identical content re-indexes to identical ids."""
    return f"{repository_id}:{chunk.file_path}:{chunk.start_line}-{chunk.end_line}:{sequence_index}"


def resolve_embedding_response(response: Any) -> list[float]:
    """
    Extract a vector from a shape-polymorphic embedding response.

    Rules are applied in order:
        1. {"data": [vector, ...]} → first vector
        2. [vector, ...] → first vector; a bare [float, ...] is the vector
        3. {"embedding": vector} → vector

    Raises:
        InvalidResponseShape: If no rule matches or the vector is not numeric
    """
    vector: Any = None

    if isinstance(response, Mapping) and isinstance(response.get("data"), list) and response["data"]:
        vector = response["data"][0]
    elif isinstance(response, list) and response:
        vector = response[0] if isinstance(response[0], (list, tuple)) else response
    elif isinstance(response, Mapping) and isinstance(response.get("embedding"), list):
        vector = response["embedding"]

    if vector is None:
        raise InvalidResponseShape(
            f"Unrecognised embedding response of type {type(response).__name__}"
        )
    return _as_vector(vector)


def _as_vector(values: Any) -> list[float]:
    if not isinstance(values, Sequence) or isinstance(values, (str, bytes)) or not values:
        raise InvalidResponseShape("Embedding vector must be a non-empty list of numbers")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        raise InvalidResponseShape("Embedding vector contains non-numeric values")
    return [float(v) for v in values]


class Embedder:
    """
    Generate embeddings through a remote model runner.

    Example:
        >>> embedder = Embedder()
        >>> vector = embedder.embed_query("Where is the router defined?")
        >>> len(vector)
        768
    """

    def __init__(
        self,
        runner: Optional["ModelRunner"] = None,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> None:
        """
        Initialize the embedder.

        Args:
            runner: Remote model runner (default: Workers AI client)
            model: Embedding model ID (default from settings)
            batch_size: Concurrent calls per group (default from settings)
        """
        if runner is None:
            from repochat.llm.workers_ai import WorkersAIClient

            runner = WorkersAIClient()
        self.runner = runner
        self.model = model or settings.embedding_model
        self.batch_size = batch_size or settings.embedding_batch_size

    def embed(self, text: str) -> list[float]:
        """Embed a single text with one remote call."""
        response = self.runner.run(self.model, {"text": [text]})
        return resolve_embedding_response(response)

    async def aembed(self, text: str) -> list[float]:
        """Async version of embed()."""
        response = await self.runner.arun(self.model, {"text": [text]})
        return resolve_embedding_response(response)

    def embed_query(self, query: str) -> list[float]:
        """Embed a user query."""
        return self.embed(query)

    async def aembed_query(self, query: str) -> list[float]:
        return await self.aembed(query)

    def embed_batch(self, chunks: Sequence[Chunk], repository_id: str) -> list[EmbeddingRecord]:
        """Synchronous wrapper around aembed_batch()."""
        return asyncio.run(self.aembed_batch(chunks, repository_id))

    async def aembed_batch(
        self,
        chunks: Sequence[Chunk],
        repository_id: str,
    ) -> list[EmbeddingRecord]:
        """
        Embed chunks in bounded concurrent groups.

        Args:
            chunks: Chunks in indexing order (position feeds the record id)
            repository_id: Owning repository ("owner/name")

        Returns:
            Records for every chunk that embedded successfully, in input order
        """
        records: list[EmbeddingRecord] = []

        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start : start + self.batch_size]
            tasks = [
                self._aembed_chunk(chunk, repository_id, start + offset)
                for offset, chunk in enumerate(batch)
            ]
            results = await asyncio.gather(*tasks)
            records.extend(record for record in results if record is not None)

        dropped = len(chunks) - len(records)
        if dropped:
            logger.warning(f"Dropped {dropped}/{len(chunks)} chunks that failed to embed for {repository_id}")
        return records

    async def _aembed_chunk(
        self,
        chunk: Chunk,
        repository_id: str,
        sequence_index: int,
    ) -> Optional[EmbeddingRecord]:
        record_id = make_record_id(repository_id, chunk, sequence_index)
        try:
            vector = await self.aembed(build_embedding_text(chunk))
        except Exception as e:
            logger.warning(f"Failed to generate embedding for chunk {record_id}: {e}")
            return None
        return EmbeddingRecord(id=record_id, vector=vector, chunk=chunk, repository_id=repository_id)
