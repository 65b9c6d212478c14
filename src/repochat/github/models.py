"""
Pydantic models for GitHub API payloads.

Only the fields the indexer and the repository-info endpoints use are kept;
everything else in the GitHub response is ignored.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class TreeEntry(BaseModel):
    """One entry of a (non-recursive) git tree listing."""

    path: str = Field(description="Path relative to the listed tree")
    type: Literal["blob", "tree", "commit"] = Field(description="Entry kind")
    sha: str = Field(description="Blob or tree object id")
    size: Optional[int] = Field(default=None, description="Blob size in bytes")


class RepoInfo(BaseModel):
    """Repository metadata as exposed to API clients."""

    id: int
    full_name: str
    private: bool = False
    fork: bool = False
    default_branch: str = "main"
    size: int = 0
    visibility: Optional[str] = None
    description: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    license: Optional[dict[str, Any]] = None
    pushed_at: Optional[str] = None
    updated_at: Optional[str] = None
    url: Optional[str] = None
    contents_url: Optional[str] = None
    trees_url: Optional[str] = None
    commits_url: Optional[str] = None
    pulls_url: Optional[str] = None
    compare_url: Optional[str] = None
    archive_url: Optional[str] = None
