"""
Tenant-scoped retrieval and prompt-context formatting.

The vector store is not trusted to filter on metadata, so every match is
checked against the caller's repository identifier after the query.
Retrieval is best-effort enrichment: a failed query yields no matches
and a match with unusable metadata is skipped.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from repochat.errors import RetrievalDegraded
from repochat.retrieval.chunker import Chunk
from repochat.retrieval.vector_store import VectorIndexClient, VectorMatch

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "\n\n## Relevant Code Context:\n"
SNIPPET_DELIMITER = "\n\n---\n\n"


@dataclass(frozen=True)
class RetrievalMatch:
    """A retrieved chunk with its similarity score."""

    chunk: Chunk
    score: float


class Retriever:
    """
    Query a vector index on behalf of one repository.

    Example:
        >>> retriever = Retriever(index)
        >>> matches = retriever.retrieve(query_vector, "octocat/hello-world", top_k=5)
    """

    def __init__(self, index: VectorIndexClient) -> None:
        self.index = index

    def retrieve(
        self,
        query_vector: Sequence[float],
        repository_id: str,
        top_k: int = 5,
    ) -> list[RetrievalMatch]:
        """
        Retrieve the chunks most similar to a query vector.

        The store is asked for top_k matches and cross-tenant hits are removed
        afterwards, so fewer than top_k matches may come back.

        Args:
            query_vector: Embedded query
            repository_id: Repository the caller is scoped to ("owner/name")
            top_k: Number of matches requested from the store

        Returns:
            Matches for this repository ordered by descending score; empty on failure
        """
        try:
            raw_matches = self.index.query(query_vector, top_k)
        except Exception as e:
            degraded = RetrievalDegraded(f"Vector query for {repository_id} failed: {e}")
            logger.warning(str(degraded))
            return []

        matches: list[RetrievalMatch] = []
        for match in raw_matches:
            try:
                if match.metadata.get("repository_id") != repository_id:
                    continue
                retrieved = RetrievalMatch(chunk=_chunk_from_metadata(match), score=float(match.score or 0.0))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping match {match.id} for {repository_id}: bad metadata ({e!r})")
                continue
            matches.append(retrieved)

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches


def _chunk_from_metadata(match: VectorMatch) -> Chunk:
    metadata = match.metadata
    return Chunk(
        content=str(metadata.get("content", "")),
        file_path=str(metadata["file_path"]),
        start_line=int(metadata["start_line"]),
        end_line=int(metadata["end_line"]),
        language=metadata.get("language"),
    )


def format_context(matches: Sequence[RetrievalMatch]) -> str:
    """
    Render matches as a numbered snippet block for a prompt.

    Returns:
        "" when there are no matches, otherwise the labelled context block
    """
    if not matches:
        return ""

    snippets = [
        f"[Code Snippet {index}]\n"
        f"File: {match.chunk.file_path}\n"
        f"Lines: {match.chunk.start_line}-{match.chunk.end_line}\n"
        f"{match.chunk.content}"
        for index, match in enumerate(matches, start=1)
    ]
    return CONTEXT_HEADER + SNIPPET_DELIMITER.join(snippets)


def exclude_seen(
    matches: Iterable[RetrievalMatch],
    seen: Iterable[RetrievalMatch],
) -> list[RetrievalMatch]:
    """Drop matches whose (file_path, start_line) already appeared in `seen`."""
    seen_keys = {match.chunk.location_key for match in seen}
    fresh: list[RetrievalMatch] = []
    for match in matches:
        if match.chunk.location_key in seen_keys:
            continue
        seen_keys.add(match.chunk.location_key)
        fresh.append(match)
    return fresh
