"""
Pytest configuration and shared fixtures.

Provides common fixtures for:
    - Configuration with test values
    - Sample source files and chunks
    - In-process fakes for the repository browser, model runner and chat model
    - Temporary directories for indexes
"""

import zlib
from pathlib import Path
from typing import Any, Optional, Union
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from repochat.errors import UpstreamUnavailable
from repochat.github.models import TreeEntry

TEST_DIMENSION = 8


# =============================================================================
# Fakes
# =============================================================================

def fake_vector(text: str, dimension: int = TEST_DIMENSION) -> list[float]:
    """Deterministic pseudo-embedding for a text."""
    rng = np.random.default_rng(zlib.crc32(text.encode("utf-8")))
    return rng.random(dimension).tolist()


class FakeModelRunner:
    """Embedding runner returning deterministic vectors in the wrapped shape."""

    def __init__(self, dimension: int = TEST_DIMENSION, fail_on: Optional[set[str]] = None) -> None:
        self.dimension = dimension
        self.fail_on = fail_on or set()
        self.calls: list[dict[str, Any]] = []

    def run(self, model: str, inputs: dict[str, Any]) -> Any:
        self.calls.append(inputs)
        text = inputs["text"][0]
        if any(marker in text for marker in self.fail_on):
            raise UpstreamUnavailable(f"embedding failed for {text[:20]!r}")
        return {"shape": [1, self.dimension], "data": [fake_vector(text, self.dimension)]}

    async def arun(self, model: str, inputs: dict[str, Any]) -> Any:
        return self.run(model, inputs)


class FakeBrowser:
    """Repository browser backed by in-memory trees and blobs."""

    def __init__(
        self,
        trees: dict[str, list[TreeEntry]],
        blobs: dict[str, str],
        default_branch: str = "main",
        fail_blobs: Optional[set[str]] = None,
    ) -> None:
        self.trees = trees
        self.blobs = blobs
        self.default_branch = default_branch
        self.fail_blobs = fail_blobs or set()
        self.blob_requests: list[str] = []

    def get_default_branch(self, owner: str, repo: str) -> str:
        return self.default_branch

    def list_tree(self, owner: str, repo: str, ref: str) -> list[TreeEntry]:
        return list(self.trees.get(ref, []))

    def get_blob(self, owner: str, repo: str, sha: str) -> str:
        self.blob_requests.append(sha)
        if sha in self.fail_blobs:
            raise UpstreamUnavailable(f"blob {sha} unavailable")
        return self.blobs[sha]


class FakeChatModel:
    """Chat model replaying scripted replies (or raising scripted errors)."""

    def __init__(self, replies: list[Union[str, Exception]]) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def chat(self, messages: list[dict[str, str]], max_tokens: int, temperature: float) -> str:
        self.calls.append(
            {"messages": [dict(m) for m in messages], "max_tokens": max_tokens, "temperature": temperature}
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """Provide test settings without requiring .env file."""
    with patch.dict(
        "os.environ",
        {
            "CLOUDFLARE_ACCOUNT_ID": "test-account",
            "CLOUDFLARE_API_TOKEN": "test-token",
            "CHUNK_SIZE": "400",
            "CHUNK_OVERLAP": "30",
            "GITHUB_TOKEN": "gh-test-token",
        },
    ):
        from repochat.config import Settings
        yield Settings(_env_file=None)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_js_source() -> str:
    """Two small functions in a brace-delimited language."""
    return "\n".join(
        [
            "function add(a, b) {",
            "  return a + b;",
            "}",
            "function sub(a, b) {",
            "  return a - b;",
            "}",
        ]
    )


@pytest.fixture
def large_function_source() -> str:
    """A single function of roughly 1200 characters."""
    body = [f"  total += {i:04d};" for i in range(72)]
    return "\n".join(["function accumulate() {", "  let total = 0;", *body, "  return total;", "}"])


@pytest.fixture
def sample_chunks():
    """Provide sample code chunks for testing."""
    from repochat.retrieval.chunker import Chunk

    return [
        Chunk(
            content="export function createRouter(routes) {\n  return new Router(routes);\n}",
            file_path="src/router.ts",
            start_line=1,
            end_line=3,
            language="ts",
        ),
        Chunk(
            content="def load_config(path):\n    return yaml.safe_load(open(path))",
            file_path="app/config.py",
            start_line=10,
            end_line=11,
            language="py",
        ),
        Chunk(
            content="# Hello World\n\nA sample project.",
            file_path="README.md",
            start_line=1,
            end_line=3,
        ),
    ]


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def kv_store():
    """Provide an empty in-memory key/value store."""
    from repochat.retrieval.status import InMemoryKeyValueStore

    return InMemoryKeyValueStore()


@pytest.fixture
def vector_index():
    """Provide an empty FAISS index with a small dimension."""
    from repochat.retrieval.vector_store import FAISSVectorIndex

    return FAISSVectorIndex(dimension=TEST_DIMENSION)


@pytest.fixture
def model_runner() -> FakeModelRunner:
    return FakeModelRunner()


@pytest.fixture
def embedder(model_runner):
    """Provide an Embedder over the fake runner."""
    from repochat.retrieval.embeddings import Embedder

    return Embedder(runner=model_runner, model="test-embedding-model", batch_size=10)


@pytest.fixture
def sample_repository() -> FakeBrowser:
    """A small repository with a nested directory and a binary file."""
    trees = {
        "main": [
            TreeEntry(path="README.md", type="blob", sha="sha-readme", size=40),
            TreeEntry(path="logo.png", type="blob", sha="sha-logo", size=2048),
            TreeEntry(path="src", type="tree", sha="tree-src"),
        ],
        "tree-src": [
            TreeEntry(path="math.js", type="blob", sha="sha-math", size=120),
            TreeEntry(path="vendor", type="commit", sha="sha-submodule"),
        ],
    }
    blobs = {
        "sha-readme": "# Calculator\n\nAdds and subtracts numbers.",
        "sha-math": "function add(a, b) {\n  return a + b;\n}\nfunction sub(a, b) {\n  return a - b;\n}",
    }
    return FakeBrowser(trees=trees, blobs=blobs)


@pytest.fixture
def mock_chat_model():
    """MagicMock chat model returning a fixed answer."""
    model = MagicMock()
    model.chat.return_value = "The router is created in src/router.ts (lines 1-3)."
    return model


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def tmp_index_dir(tmp_path: Path) -> Path:
    """Provide temporary directory for FAISS index."""
    index_dir = tmp_path / "index"
    index_dir.mkdir()
    return index_dir


# =============================================================================
# Factory Fixtures
# =============================================================================

@pytest.fixture
def chat_model_factory():
    """Build FakeChatModel instances from scripted replies."""
    return FakeChatModel


@pytest.fixture
def browser_factory():
    """Build FakeBrowser instances from trees and blobs."""
    return FakeBrowser


@pytest.fixture
def runner_factory():
    """Build FakeModelRunner instances."""
    return FakeModelRunner


@pytest.fixture
def vector_for():
    """Deterministic pseudo-embedding function."""
    return fake_vector
