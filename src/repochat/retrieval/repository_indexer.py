"""
Full, idempotent indexing of a GitHub repository.

Walks the default branch, chunks up to `max_index_files` source/text files,
embeds the chunks and upserts them into the vector index. The repository is
marked indexed only after the upsert is flushed; a failed run resets the
status so a retry starts from scratch.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from repochat.config import Settings, settings as default_settings
from repochat.errors import UpstreamUnavailable, split_repository_id
from repochat.github.models import TreeEntry
from repochat.retrieval.chunker import (
    INDEXABLE_EXTENSIONS,
    Chunk,
    chunk_code,
    extract_text_content,
    file_extension,
)
from repochat.retrieval.status import (
    KeyValueStore,
    RepositoryIndexStatus,
    get_index_status,
    set_index_status,
)
from repochat.retrieval.vector_store import VectorIndexClient, upsert_in_batches

if TYPE_CHECKING:
    from repochat.github.client import RepositoryBrowser
    from repochat.retrieval.embeddings import Embedder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexResult:
    """Outcome of an index request."""

    repository_id: str
    files_processed: int = 0
    chunks_indexed: int = 0
    already_indexed: bool = False


class RepositoryIndexer:
    """
    Drive browser → chunker → embedder → vector index for one repository.

    Example:
        >>> indexer = RepositoryIndexer(browser, embedder, index, status_store)
        >>> result = indexer.index_repository("octocat/Hello-World")
        >>> result.chunks_indexed
        42
    """

    def __init__(
        self,
        browser: "RepositoryBrowser",
        embedder: "Embedder",
        vector_index: VectorIndexClient,
        status_store: KeyValueStore,
        config: Optional[Settings] = None,
    ) -> None:
        self.browser = browser
        self.embedder = embedder
        self.vector_index = vector_index
        self.status_store = status_store
        self.config = config or default_settings

    def index_repository(self, repository_id: str) -> IndexResult:
        """
        Index a repository unless it is already indexed or being indexed.

        Args:
            repository_id: "owner/name"

        Returns:
            IndexResult with file and chunk counts, or already_indexed=True

        Raises:
            InvalidInput: If the identifier is malformed
            UpstreamUnavailable: If the branch or tree cannot be listed
        """
        owner, name = split_repository_id(repository_id)
        repository_id = f"{owner}/{name}"

        status = get_index_status(self.status_store, repository_id)
        if status is not RepositoryIndexStatus.ABSENT:
            logger.info(f"Skipping {repository_id}: status is {status.value}")
            return IndexResult(repository_id=repository_id, already_indexed=True)

        set_index_status(
            self.status_store,
            repository_id,
            RepositoryIndexStatus.INDEXING,
            ttl=self.config.index_lock_ttl_seconds,
        )
        try:
            result = self._run(owner, name, repository_id)
        except Exception:
            logger.error(f"Indexing {repository_id} failed; status reset for retry")
            set_index_status(self.status_store, repository_id, RepositoryIndexStatus.ABSENT)
            raise

        set_index_status(self.status_store, repository_id, RepositoryIndexStatus.INDEXED)
        logger.info(
            f"Indexed {repository_id}: {result.files_processed} files, "
            f"{result.chunks_indexed} chunks"
        )
        return result

    def _run(self, owner: str, name: str, repository_id: str) -> IndexResult:
        branch = self.browser.get_default_branch(owner, name)
        files = self.collect_files(owner, name, branch)
        logger.info(f"Found {len(files)} indexable files in {repository_id}@{branch}")

        chunks: list[Chunk] = []
        files_processed = 0
        for entry in files:
            file_chunks = self._chunk_file(owner, name, entry)
            if file_chunks is None:
                continue
            chunks.extend(file_chunks)
            files_processed += 1

        records = self.embedder.embed_batch(chunks, repository_id)
        upsert_in_batches(
            self.vector_index,
            [record.to_vector_record() for record in records],
            batch_size=self.config.upsert_batch_size,
        )
        self.vector_index.flush()
        return IndexResult(
            repository_id=repository_id,
            files_processed=files_processed,
            chunks_indexed=len(records),
        )

    def _chunk_file(self, owner: str, name: str, entry: TreeEntry) -> Optional[list[Chunk]]:
        try:
            raw = self.browser.get_blob(owner, name, entry.sha)
        except UpstreamUnavailable as e:
            logger.warning(f"Skipping {entry.path}: {e}")
            return None

        text = extract_text_content(raw, entry.path)
        if text is None:
            logger.debug(f"Skipping binary file {entry.path}")
            return None

        return chunk_code(
            text,
            entry.path,
            max_chunk_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
        )

    def collect_files(self, owner: str, name: str, ref: str) -> list[TreeEntry]:
        """
        Walk the tree depth-first and keep indexable blobs.

        Stops once `max_index_files` files qualify; paths in the returned
        entries are repository-relative.
        """
        files: list[TreeEntry] = []
        self._walk(owner, name, ref, "", files)
        return files

    def _walk(self, owner: str, name: str, ref: str, prefix: str, files: list[TreeEntry]) -> None:
        for entry in self.browser.list_tree(owner, name, ref):
            if len(files) >= self.config.max_index_files:
                return
            path = f"{prefix}{entry.path}"
            if entry.type == "tree":
                self._walk(owner, name, entry.sha, f"{path}/", files)
            elif entry.type == "blob" and self._is_indexable(path, entry.size):
                files.append(entry.model_copy(update={"path": path}))

    def _is_indexable(self, path: str, size: Optional[int]) -> bool:
        if file_extension(path) not in INDEXABLE_EXTENSIONS:
            return False
        return size is None or size <= self.config.max_file_size_bytes


def index_repository(repository_id: str) -> IndexResult:
    """
    Index a repository with the application's shared collaborators.

    The vector index is flushed to disk inside the run, before the
    repository is marked indexed.
    """
    from repochat.retrieval.resources import get_repository_indexer

    return get_repository_indexer().index_repository(repository_id)
