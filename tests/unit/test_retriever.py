"""
Unit tests for retrieval.retriever module.
"""

import logging
from unittest.mock import MagicMock

import pytest

from repochat.retrieval.chunker import Chunk
from repochat.retrieval.retriever import (
    RetrievalMatch,
    Retriever,
    exclude_seen,
    format_context,
)
from repochat.retrieval.vector_store import VectorMatch


def _match(record_id: str, score: float, repository_id: str, file_path: str = "src/a.js", start: int = 1) -> VectorMatch:
    return VectorMatch(
        id=record_id,
        score=score,
        metadata={
            "repository_id": repository_id,
            "file_path": file_path,
            "start_line": start,
            "end_line": start + 2,
            "content": f"// {record_id}",
            "language": "js",
        },
    )


@pytest.mark.unit
class TestRetriever:
    """Tests for Retriever.retrieve()."""

    def test_filters_out_other_repositories(self):
        index = MagicMock()
        index.query.return_value = [
            _match("mine-1", 0.9, "octocat/hello"),
            _match("theirs", 0.95, "someone/else"),
            _match("mine-2", 0.7, "octocat/hello", start=10),
        ]

        matches = Retriever(index).retrieve([0.1, 0.2], "octocat/hello", top_k=5)

        assert [m.chunk.content for m in matches] == ["// mine-1", "// mine-2"]
        index.query.assert_called_once_with([0.1, 0.2], 5)

    def test_prefix_of_repository_id_does_not_match(self):
        index = MagicMock()
        index.query.return_value = [_match("prefix", 0.9, "octocat/hello-world")]

        assert Retriever(index).retrieve([0.1], "octocat/hello", top_k=5) == []

    def test_results_sorted_by_descending_score(self):
        index = MagicMock()
        index.query.return_value = [
            _match("low", 0.2, "o/r"),
            _match("high", 0.8, "o/r"),
            _match("mid", 0.5, "o/r"),
        ]

        matches = Retriever(index).retrieve([0.1], "o/r", top_k=3)

        assert [m.score for m in matches] == [0.8, 0.5, 0.2]

    def test_chunk_rebuilt_from_metadata(self):
        index = MagicMock()
        index.query.return_value = [_match("m", 0.9, "o/r", file_path="lib/x.js", start=4)]

        chunk = Retriever(index).retrieve([0.1], "o/r")[0].chunk

        assert chunk == Chunk(content="// m", file_path="lib/x.js", start_line=4, end_line=6, language="js")

    def test_query_failure_returns_empty(self):
        index = MagicMock()
        index.query.side_effect = RuntimeError("vector store down")

        assert Retriever(index).retrieve([0.1], "o/r") == []

    def test_all_malformed_metadata_returns_empty(self):
        index = MagicMock()
        index.query.return_value = [VectorMatch(id="bad", score=0.5, metadata={"repository_id": "o/r"})]

        assert Retriever(index).retrieve([0.1], "o/r") == []

    def test_malformed_match_is_skipped(self, caplog):
        good = {"repository_id": "o/r", "content": "x = 1", "file_path": "a.py", "start_line": 1, "end_line": 1}
        index = MagicMock()
        index.query.return_value = [
            VectorMatch(id="bad", score=0.9, metadata={"repository_id": "o/r", "start_line": 3, "end_line": 4}),
            VectorMatch(id="odd", score=0.8, metadata={**good, "start_line": "three"}),
            VectorMatch(id="good", score=0.5, metadata=good),
        ]

        with caplog.at_level(logging.WARNING):
            matches = Retriever(index).retrieve([0.1], "o/r")

        assert [m.chunk.file_path for m in matches] == ["a.py"]
        assert matches[0].score == 0.5
        assert "Skipping match bad" in caplog.text
        assert "Skipping match odd" in caplog.text

    def test_with_faiss_index(self, vector_index, embedder, sample_chunks):
        records = embedder.embed_batch(sample_chunks, "octocat/hello")
        records += embedder.embed_batch(sample_chunks, "someone/else")
        vector_index.upsert([r.to_vector_record() for r in records])

        matches = Retriever(vector_index).retrieve(records[0].vector, "octocat/hello", top_k=6)

        assert len(matches) == 3
        assert matches[0].chunk == sample_chunks[0]


@pytest.mark.unit
class TestFormatContext:
    """Tests for format_context()."""

    def test_empty_matches_give_empty_string(self):
        assert format_context([]) == ""

    def test_exact_rendering(self):
        matches = [
            RetrievalMatch(
                chunk=Chunk(content="function a() {}", file_path="src/a.js", start_line=1, end_line=1),
                score=0.9,
            ),
            RetrievalMatch(
                chunk=Chunk(content="def b():\n    pass", file_path="b.py", start_line=5, end_line=6),
                score=0.8,
            ),
        ]

        assert format_context(matches) == (
            "\n\n## Relevant Code Context:\n"
            "[Code Snippet 1]\n"
            "File: src/a.js\n"
            "Lines: 1-1\n"
            "function a() {}"
            "\n\n---\n\n"
            "[Code Snippet 2]\n"
            "File: b.py\n"
            "Lines: 5-6\n"
            "def b():\n    pass"
        )


@pytest.mark.unit
class TestExcludeSeen:
    """Tests for exclude_seen()."""

    def _m(self, path: str, start: int) -> RetrievalMatch:
        return RetrievalMatch(chunk=Chunk(content="x", file_path=path, start_line=start, end_line=start), score=0.5)

    def test_drops_seen_locations(self):
        seen = [self._m("a.js", 1), self._m("b.js", 3)]
        candidates = [self._m("a.js", 1), self._m("a.js", 2), self._m("b.js", 3), self._m("c.js", 1)]

        fresh = exclude_seen(candidates, seen)

        assert [m.chunk.location_key for m in fresh] == [("a.js", 2), ("c.js", 1)]

    def test_drops_duplicates_within_candidates(self):
        fresh = exclude_seen([self._m("a.js", 1), self._m("a.js", 1)], [])

        assert len(fresh) == 1
