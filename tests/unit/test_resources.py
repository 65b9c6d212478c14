"""
Unit tests for resource caching in retrieval.resources module.

Tests the singleton caching behavior of:
    - get_vector_index()
    - get_status_store()
    - get_embedder(), get_retriever(), get_chat_model()
    - clear_resource_cache()
"""

from unittest.mock import patch

import pytest

from repochat.retrieval import resources
from repochat.retrieval.resources import (
    clear_resource_cache,
    get_chat_model,
    get_embedder,
    get_retriever,
    get_status_store,
    get_vector_index,
)
from repochat.retrieval.status import JsonFileKeyValueStore
from repochat.retrieval.vector_store import FAISSVectorIndex, VectorRecord


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_resource_cache()
    yield
    clear_resource_cache()


def _records() -> list[VectorRecord]:
    return [
        VectorRecord(id="a", vector=[1.0, 0.0, 0.0, 0.0], metadata={"repository_id": "o/r"}),
        VectorRecord(id="b", vector=[0.0, 1.0, 0.0, 0.0], metadata={"repository_id": "o/r"}),
    ]


@pytest.mark.unit
class TestResourceCaching:
    """Test that resource getters implement proper caching."""

    def test_get_vector_index_loads_from_disk(self, tmp_index_dir):
        index_path = tmp_index_dir / "vectors"
        index = FAISSVectorIndex(dimension=4)
        index.upsert(_records())
        index.save(index_path)

        with patch.object(resources.settings, "faiss_index_path", index_path):
            loaded = get_vector_index()
            again = get_vector_index()

        assert loaded is again
        assert loaded.size == 2
        assert loaded.ids() == {"a", "b"}

    def test_get_vector_index_starts_empty_without_files(self, tmp_index_dir):
        with patch.object(resources.settings, "faiss_index_path", tmp_index_dir / "missing"):
            index = get_vector_index()

        assert index.size == 0

    def test_vector_index_flushes_to_configured_path(self, tmp_index_dir):
        index_path = tmp_index_dir / "vectors"

        with patch.object(resources.settings, "faiss_index_path", index_path):
            index = get_vector_index()
            index.upsert([VectorRecord(id="a", vector=[0.5] * index.dimension, metadata={})])
            index.flush()

        assert index.path == index_path
        reloaded = FAISSVectorIndex.from_disk(index_path)
        assert reloaded.ids() == {"a"}

    def test_get_status_store_uses_json_file(self, tmp_path):
        path = tmp_path / "status.json"

        with patch.object(resources.settings, "status_store_path", path):
            store = get_status_store()

        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == path
        assert get_status_store() is store

    def test_get_embedder_caches_result(self):
        assert get_embedder() is get_embedder()

    def test_retriever_shares_vector_index(self, tmp_index_dir):
        with patch.object(resources.settings, "faiss_index_path", tmp_index_dir / "missing"):
            retriever = get_retriever()
            assert retriever.index is get_vector_index()

    def test_get_chat_model_caches_result(self):
        with patch("repochat.llm.factory.create_llm") as create_llm:
            first = get_chat_model()
            second = get_chat_model()

        assert first is second
        create_llm.assert_called_once()

    def test_clear_resource_cache(self):
        first = get_embedder()

        clear_resource_cache()

        assert get_embedder() is not first
