"""
GitHub integration.

Components:
    - client: REST client acting as the repository browser
    - models: Pydantic models for tree entries and repository metadata
"""

from repochat.github.client import (
    GitHubClient,
    RepositoryBrowser,
    parse_github_url,
    resolve_repository_id,
)
from repochat.github.models import RepoInfo, TreeEntry

__all__ = [
    "GitHubClient",
    "RepoInfo",
    "RepositoryBrowser",
    "TreeEntry",
    "parse_github_url",
    "resolve_repository_id",
]
