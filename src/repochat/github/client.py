"""
GitHub REST client used as the repository browser.

Provides the three calls the indexer needs (default branch, one tree level,
blob content) plus cached repository metadata for the API layer.
"""

import base64
import binascii
import logging
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

import httpx

from repochat.config import settings
from repochat.errors import InvalidInput, RepositoryNotFound, UpstreamUnavailable
from repochat.github.models import RepoInfo, TreeEntry
from repochat.retrieval.status import KeyValueStore

logger = logging.getLogger(__name__)

GITHUB_HOSTS = frozenset({"github.com", "www.github.com"})


class RepositoryBrowser(Protocol):
    """Source-control host contract consumed by the indexer."""

    def get_default_branch(self, owner: str, repo: str) -> str:
        ...

    def list_tree(self, owner: str, repo: str, ref: str) -> list[TreeEntry]:
        ...

    def get_blob(self, owner: str, repo: str, sha: str) -> str:
        ...


def parse_github_url(url: str) -> Optional[tuple[str, str]]:
    """
    Extract (owner, repo) from a GitHub URL.

    Returns:
        The pair, or None if the URL is not a github.com repository URL
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.hostname not in GITHUB_HOSTS:
        return None
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        return None
    repo = parts[1][:-4] if parts[1].endswith(".git") else parts[1]
    return parts[0], repo


def resolve_repository_id(value: str) -> str:
    """
    Normalise a GitHub URL or ``owner/name`` string to ``owner/name``.

    Raises:
        InvalidInput: If the value is neither
    """
    if not value or not value.strip():
        raise InvalidInput("Repository is required")
    value = value.strip()
    if "://" in value:
        parsed = parse_github_url(value)
        if parsed is None:
            raise InvalidInput(f"Invalid GitHub URL: {value}")
        return f"{parsed[0]}/{parsed[1]}"
    return value


class GitHubClient:
    """
    Thin synchronous wrapper around the GitHub REST API v3.

    Example:
        >>> client = GitHubClient()
        >>> branch = client.get_default_branch("octocat", "Hello-World")
        >>> entries = client.list_tree("octocat", "Hello-World", branch)
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        cache: Optional[KeyValueStore] = None,
        cache_ttl: Optional[int] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_url: REST API root (default from settings)
            token: Personal access token (default from settings, optional)
            timeout: Request timeout in seconds
            cache: Key/value store for repository metadata
            cache_ttl: Metadata cache lifetime in seconds (default from settings)
        """
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.token = token or settings.github_token_value
        self.timeout = timeout
        self.cache = cache
        self.cache_ttl = settings.repo_info_cache_ttl if cache_ttl is None else cache_ttl

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "repochat",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, path: str) -> Any:
        url = f"{self.api_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout, headers=self.headers) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"GitHub request failed for {path}: {e}") from e

        if response.status_code == 404:
            raise RepositoryNotFound(f"Not found on GitHub: {path}")
        if response.is_error:
            raise UpstreamUnavailable(f"GitHub API error: {response.status_code} for {path}")
        return response.json()

    def get_repo_info(self, owner: str, repo: str) -> tuple[RepoInfo, bool]:
        """
        Fetch repository metadata, served from the cache when fresh.

        Returns:
            Tuple of (repo_info, cached)
        """
        cache_key = f"repo:{owner}/{repo}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached:
                return RepoInfo.model_validate_json(cached), True

        info = RepoInfo.model_validate(self._get(f"/repos/{owner}/{repo}"))

        if self.cache is not None:
            self.cache.put(cache_key, info.model_dump_json(), ttl=self.cache_ttl)
        return info, False

    def get_default_branch(self, owner: str, repo: str) -> str:
        """Name of the repository's default branch."""
        info, _ = self.get_repo_info(owner, repo)
        return info.default_branch

    def list_tree(self, owner: str, repo: str, ref: str) -> list[TreeEntry]:
        """
        List one level of a git tree.

        Args:
            ref: Branch name, commit or tree sha

        Returns:
            Entries with paths relative to the listed tree
        """
        data = self._get(f"/repos/{owner}/{repo}/git/trees/{ref}")
        if data.get("truncated"):
            logger.warning(f"GitHub truncated tree listing for {owner}/{repo}@{ref}")
        return [TreeEntry.model_validate(entry) for entry in data.get("tree", [])]

    def get_blob(self, owner: str, repo: str, sha: str) -> str:
        """
        Blob content as text.

        Base64 payloads are decoded; content that is not valid base64 or not
        UTF-8 is returned as delivered.
        """
        data = self._get(f"/repos/{owner}/{repo}/git/blobs/{sha}")
        content = data.get("content", "")
        if data.get("encoding") != "base64":
            return content
        try:
            return base64.b64decode(content.replace("\n", "")).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.debug(f"Blob {sha} in {owner}/{repo} is not UTF-8 text, returning raw payload")
            return content
