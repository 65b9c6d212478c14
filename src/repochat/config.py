"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Use a .env file for local development.

Environment Variables:
    CLOUDFLARE_ACCOUNT_ID: Cloudflare account that owns the Workers AI models
    CLOUDFLARE_API_TOKEN: API token for Workers AI
    EMBEDDING_MODEL: Workers AI embedding model
    LLM_MODEL: Workers AI chat model
    GITHUB_TOKEN: Optional GitHub token (raises the API rate limit)
    CHUNK_SIZE: Character size for code chunks
    CHUNK_OVERLAP: Overlap budget between chunks (overlap // 10 lines)
    FAISS_INDEX_PATH: Path to FAISS index file
    STATUS_STORE_PATH: Path to the JSON key/value status store
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Workers AI Credentials
    # ==========================================================================
    cloudflare_account_id: str = Field(
        default="",
        description="Cloudflare account ID used in the Workers AI REST path",
    )
    cloudflare_api_token: Optional[SecretStr] = Field(
        default=None,
        description="Cloudflare API token with Workers AI access",
    )
    workers_ai_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Base URL of the Cloudflare REST API",
    )

    # ==========================================================================
    # Model Configuration
    # ==========================================================================
    embedding_model: str = Field(
        default="@cf/baai/bge-base-en-v1.5",
        description="Workers AI model for chunk and query embeddings",
    )
    embedding_dimension: int = Field(
        default=768,
        description="Dimension of embedding vectors (must match model)",
    )

    # LLM Configuration
    llm_model: str = Field(
        default="@cf/meta/llama-3.1-8b-instruct",
        description="Workers AI chat model",
    )
    use_custom_endpoint: bool = Field(
        default=False,
        description="Use custom OpenAI-compatible endpoint instead of Workers AI",
    )
    custom_endpoint_url: str = Field(
        default="http://localhost:8080/v1/chat/completions",
        description="Custom inference endpoint URL (OpenAI-compatible)",
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperature for answer generation",
    )
    llm_max_tokens: int = Field(
        default=1000,
        ge=1,
        le=4096,
        description="Maximum tokens for the first-round answer",
    )
    llm_followup_max_tokens: int = Field(
        default=1500,
        ge=1,
        le=8192,
        description="Maximum tokens for the second-round answer",
    )

    # ==========================================================================
    # Chunking Configuration
    # ==========================================================================
    chunk_size: int = Field(
        default=500,
        ge=1,
        le=8192,
        description="Target size in characters for code chunks",
    )
    chunk_overlap: int = Field(
        default=50,
        ge=0,
        le=1024,
        description="Overlap budget between chunks; overlap // 10 lines are repeated",
    )

    # ==========================================================================
    # Indexing Configuration
    # ==========================================================================
    embedding_batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Concurrent embedding calls per batch",
    )
    upsert_batch_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Records per vector store upsert call",
    )
    max_index_files: int = Field(
        default=100,
        ge=1,
        description="Maximum number of files indexed per repository",
    )
    max_file_size_bytes: int = Field(
        default=100_000,
        ge=1,
        description="Files above this size are skipped during indexing",
    )
    index_lock_ttl_seconds: int = Field(
        default=900,
        ge=1,
        description="Lifetime of the in-flight 'indexing' status marker",
    )

    # ==========================================================================
    # Retrieval Configuration
    # ==========================================================================
    faiss_index_path: Path = Field(
        default=Path("data/index/vectors"),
        description="Base path of the FAISS index files (.index + .json)",
    )
    status_store_path: Path = Field(
        default=Path("data/status.json"),
        description="Path of the JSON key/value status store",
    )
    retrieval_top_k: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of chunks retrieved for the first answer round",
    )
    expanded_top_k: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of chunks retrieved for the second answer round",
    )

    # ==========================================================================
    # Conversation Configuration
    # ==========================================================================
    history_window: int = Field(
        default=10,
        ge=0,
        description="Prior turns sent to the model when no code context is available",
    )
    grounded_history_window: int = Field(
        default=8,
        ge=0,
        description="Prior turns sent to the model alongside code context",
    )

    # ==========================================================================
    # GitHub Configuration
    # ==========================================================================
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API root",
    )
    github_token: Optional[SecretStr] = Field(
        default=None,
        description="Optional GitHub token",
    )
    repo_info_cache_ttl: int = Field(
        default=3600,
        ge=0,
        description="Seconds repository metadata stays cached",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind API server",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for API server",
    )

    # ==========================================================================
    # Observability Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int, info) -> int:
        """Ensure overlap is less than chunk size."""
        chunk_size = info.data.get("chunk_size", 500)
        if v >= chunk_size:
            raise ValueError(f"chunk_overlap ({v}) must be less than chunk_size ({chunk_size})")
        return v

    @field_validator("faiss_index_path", "status_store_path")
    @classmethod
    def resolve_path(cls, v: Path) -> Path:
        """Resolve paths to absolute paths."""
        return v.resolve()

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def cloudflare_api_token_value(self) -> Optional[str]:
        """Get the actual Workers AI token (use sparingly)."""
        if self.cloudflare_api_token:
            return self.cloudflare_api_token.get_secret_value()
        return None

    @property
    def github_token_value(self) -> Optional[str]:
        """Get the actual GitHub token (use sparingly)."""
        if self.github_token:
            return self.github_token.get_secret_value()
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    Call `get_settings.cache_clear()` to reload settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience alias
settings = get_settings()
