"""
Singleton resource management for the pipeline's collaborators.

Provides cached instances of resources that should only be created once per
application lifecycle. Uses @lru_cache pattern (same as config.py settings
singleton) so that indexing and answering share one vector index, one status
store and one set of remote clients.

Key resources:
    - FAISS vector index (loaded from disk if present)
    - Key/value status store (JSON file)
    - Workers AI model runner and embedder
    - GitHub repository browser
    - Chat model (Workers AI or custom endpoint)

Usage:
    index = get_vector_index()  # First call loads, subsequent calls instant
    retriever = get_retriever()

    # In tests (reset cache)
    clear_resource_cache()
"""

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from repochat.config import settings

if TYPE_CHECKING:
    from repochat.github.client import GitHubClient
    from repochat.llm.factory import ChatModel
    from repochat.llm.workers_ai import WorkersAIClient
    from repochat.retrieval.embeddings import Embedder
    from repochat.retrieval.repository_indexer import RepositoryIndexer
    from repochat.retrieval.retriever import Retriever
    from repochat.retrieval.status import KeyValueStore
    from repochat.retrieval.vector_store import FAISSVectorIndex

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_vector_index() -> "FAISSVectorIndex":
    """
    Get or create the global vector index.

    Loads the persisted index when its files exist, otherwise starts empty.
    """
    from repochat.retrieval.vector_store import FAISSVectorIndex

    index = FAISSVectorIndex(dimension=settings.embedding_dimension, path=settings.faiss_index_path)
    try:
        index.load()
        logger.info(f"Vector index loaded ({index.size} vectors)")
    except FileNotFoundError:
        logger.info(f"No vector index at {settings.faiss_index_path}, starting empty")
    return index


@lru_cache(maxsize=1)
def get_status_store() -> "KeyValueStore":
    """Get or create the global key/value status store."""
    from repochat.retrieval.status import JsonFileKeyValueStore

    return JsonFileKeyValueStore(settings.status_store_path)


@lru_cache(maxsize=1)
def get_model_runner() -> "WorkersAIClient":
    """Get or create the Workers AI runner shared by embeddings and chat."""
    from repochat.llm.workers_ai import WorkersAIClient

    return WorkersAIClient()


@lru_cache(maxsize=1)
def get_embedder() -> "Embedder":
    """Get or create the global Embedder."""
    from repochat.retrieval.embeddings import Embedder

    logger.info(f"Initializing embedder for model: {settings.embedding_model}")
    return Embedder(runner=get_model_runner(), model=settings.embedding_model)


@lru_cache(maxsize=1)
def get_retriever() -> "Retriever":
    """Get or create the global Retriever over the shared vector index."""
    from repochat.retrieval.retriever import Retriever

    return Retriever(get_vector_index())


@lru_cache(maxsize=1)
def get_github_client() -> "GitHubClient":
    """Get or create the GitHub client (repository metadata cached in the status store)."""
    from repochat.github.client import GitHubClient

    return GitHubClient(cache=get_status_store())


@lru_cache(maxsize=1)
def get_chat_model() -> "ChatModel":
    """Get or create the configured chat model."""
    from repochat.llm.factory import create_llm

    return create_llm()


@lru_cache(maxsize=1)
def get_repository_indexer() -> "RepositoryIndexer":
    """Get or create the indexer wired to the shared collaborators."""
    from repochat.retrieval.repository_indexer import RepositoryIndexer

    return RepositoryIndexer(
        browser=get_github_client(),
        embedder=get_embedder(),
        vector_index=get_vector_index(),
        status_store=get_status_store(),
    )


def clear_resource_cache() -> None:
    """
    Clear all cached resources.

    Used in tests to reset state between test cases.
    In production, resources persist for application lifetime.
    """
    get_vector_index.cache_clear()
    get_status_store.cache_clear()
    get_model_runner.cache_clear()
    get_embedder.cache_clear()
    get_retriever.cache_clear()
    get_github_client.cache_clear()
    get_chat_model.cache_clear()
    get_repository_indexer.cache_clear()
    logger.debug("Resource cache cleared")
