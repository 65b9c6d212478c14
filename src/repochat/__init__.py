"""
repochat: Chat with a GitHub repository through retrieval-augmented generation

This package indexes a repository's source files into a vector index and
answers natural-language questions about the code, widening the search once
when the first answer reports that it lacks information.

Key Components:
    - retrieval: Chunking, embeddings, vector index, index status, indexing
    - nodes: LangGraph nodes (index check, retriever, generator, sufficiency)
    - graph: LangGraph workflow definition and state management
    - github: GitHub REST client (repository browser and metadata)
    - llm: Workers AI and OpenAI-compatible chat models
    - api: FastAPI REST endpoints

Example:
    >>> from repochat.retrieval.repository_indexer import index_repository
    >>> from repochat.graph import answer
    >>> index_repository("octocat/Hello-World")
    >>> print(answer("What does this project do?", "octocat/Hello-World"))
"""

__version__ = "0.1.0"

from repochat.config import settings

__all__ = [
    "__version__",
    "settings",
]
