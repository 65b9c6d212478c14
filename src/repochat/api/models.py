"""
Pydantic models for API request and response schemas.

These models provide automatic validation and OpenAPI documentation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from repochat.github.models import RepoInfo


class ConversationTurnSchema(BaseModel):
    """A prior chat message."""

    role: Literal["user", "assistant", "system"]
    content: str


class RepositoryReference(BaseModel):
    """Identify a repository by GitHub URL or "owner/name"."""

    repo_url: Optional[str] = Field(
        default=None,
        description="GitHub repository URL",
        examples=["https://github.com/octocat/Hello-World"],
    )
    repository_id: Optional[str] = Field(
        default=None,
        description="Repository identifier in owner/name form",
        examples=["octocat/Hello-World"],
    )

    @model_validator(mode="after")
    def require_repository(self) -> "RepositoryReference":
        if not (self.repo_url or self.repository_id):
            raise ValueError("Either repo_url or repository_id is required")
        return self

    @property
    def repository(self) -> str:
        return self.repository_id or self.repo_url or ""


class ChatRequest(RepositoryReference):
    """Request schema for the /api/chat endpoint."""

    message: str = Field(
        ...,
        min_length=1,
        description="The user's question about the repository",
        examples=["Where is the request router defined?"],
    )
    conversation_history: list[ConversationTurnSchema] = Field(
        default_factory=list,
        description="Prior turns, oldest first",
    )
    verbose: bool = Field(
        default=False,
        description="Include retrieval and generation metadata",
    )


class ChatMetadata(BaseModel):
    """Metadata about answer processing."""

    indexed: bool = Field(description="Whether the repository was indexed")
    retrieval_calls: int = Field(description="Vector retrievals made (0-2)")
    generation_calls: int = Field(description="Chat model calls made (1-2)")
    chunks_used: int = Field(description="Code chunks included in the prompts")
    latency_ms: float = Field(description="Total processing time in milliseconds")


class ChatResponse(BaseModel):
    """Response schema for the /api/chat endpoint."""

    response: str = Field(description="The final answer")
    success: bool = True
    metadata: Optional[ChatMetadata] = None


class IndexRequest(RepositoryReference):
    """Request schema for the /api/index endpoint."""


class IndexResponse(BaseModel):
    """Response schema for the /api/index endpoint."""

    success: bool = True
    repository_id: str
    files_processed: int = 0
    chunks_indexed: int = 0
    already_indexed: bool = False


class RepoInfoRequest(BaseModel):
    """Request schema for the /api/repo/info endpoint."""

    repo_url: str = Field(
        ...,
        min_length=1,
        description="GitHub repository URL",
        examples=["https://github.com/octocat/Hello-World"],
    )


class RepoInfoResponse(BaseModel):
    """Response schema for repository metadata endpoints."""

    success: bool = True
    data: RepoInfo
    cached: bool = False


class HealthResponse(BaseModel):
    """Response schema for the /health endpoint."""

    status: str = Field(
        description="Health status",
        examples=["healthy", "degraded"],
    )
    version: str = Field(description="API version")
    vectors_indexed: int = Field(description="Vectors in the loaded index")
    llm_healthy: Optional[bool] = Field(
        default=None,
        description="Custom endpoint health (only checked when one is configured)",
    )


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: str = Field(
        description="Error code",
        examples=["invalid_input", "not_found", "upstream_unavailable"],
    )
    message: str = Field(description="Human-readable error message")
