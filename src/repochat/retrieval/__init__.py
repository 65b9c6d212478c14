"""
Indexing and retrieval components for the RAG pipeline.

Components:
    - chunker: Split files into line-addressed chunks
    - embeddings: Generate vector embeddings via a remote model
    - vector_store: Vector index contract and FAISS implementation
    - status: Per-repository index status on a key/value store
    - retriever: Tenant-scoped retrieval and context formatting
    - repository_indexer: Full repository indexing
"""

from repochat.retrieval.chunker import Chunk, chunk_code, extract_text_content
from repochat.retrieval.embeddings import Embedder, EmbeddingRecord
from repochat.retrieval.retriever import RetrievalMatch, Retriever, format_context
from repochat.retrieval.status import RepositoryIndexStatus
from repochat.retrieval.vector_store import FAISSVectorIndex, VectorMatch, VectorRecord

__all__ = [
    "Chunk",
    "chunk_code",
    "extract_text_content",
    "Embedder",
    "EmbeddingRecord",
    "FAISSVectorIndex",
    "RepositoryIndexStatus",
    "RetrievalMatch",
    "Retriever",
    "VectorMatch",
    "VectorRecord",
    "format_context",
]
