"""
FastAPI application for the repochat REST API.

Run with:
    uvicorn repochat.api.main:app --reload

Or use the CLI:
    repochat serve
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repochat import __version__
from repochat.api.models import (
    ChatMetadata,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    IndexRequest,
    IndexResponse,
    RepoInfoRequest,
    RepoInfoResponse,
)
from repochat.config import settings
from repochat.errors import InvalidInput, RepositoryNotFound, UpstreamUnavailable, split_repository_id
from repochat.github.client import parse_github_url, resolve_repository_id
from repochat.graph.workflow import run_answer
from repochat.retrieval.repository_indexer import index_repository
from repochat.retrieval.resources import get_chat_model, get_github_client, get_vector_index

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Load the vector index into memory (cached)

    Shutdown:
        - Resources cleaned up on process exit
    """
    logger.info("Initializing repochat resources...")
    index = get_vector_index()
    logger.info(f"Vector index ready ({index.size} vectors)")

    yield

    logger.info("Shutting down repochat...")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="repochat",
        description="Retrieval-augmented chat over GitHub repositories",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInput, _invalid_input_handler)
    app.add_exception_handler(RepositoryNotFound, _not_found_handler)
    app.add_exception_handler(UpstreamUnavailable, _upstream_handler)

    app.include_router(router)

    return app


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(),
    )


async def _invalid_input_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, "invalid_input", str(exc))


async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc))


async def _upstream_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return _error(status.HTTP_502_BAD_GATEWAY, "upstream_unavailable", str(exc))


router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Repository not found"},
    502: {"model": ErrorResponse, "description": "Upstream service failed"},
}


@router.get("/health", response_model=HealthResponse, tags=["System"])
def health_check() -> HealthResponse:
    """
    Health check endpoint for liveness/readiness probes.

    Returns:
        Health status and index size
    """
    vectors = get_vector_index().size

    llm_healthy = None
    if settings.use_custom_endpoint:
        llm_healthy, message = get_chat_model().health_check()
        if not llm_healthy:
            logger.warning(f"Chat endpoint unhealthy: {message}")

    return HealthResponse(
        status="degraded" if llm_healthy is False else "healthy",
        version=__version__,
        vectors_indexed=vectors,
        llm_healthy=llm_healthy,
    )


@router.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES, tags=["Chat"])
def chat_endpoint(request: ChatRequest) -> ChatResponse:
    """
    Answer a question about a repository.

    The turn flows through:
    1. Index check - only indexed repositories are searched
    2. Retriever - fetches the top code chunks for the question
    3. Generator - answers, citing files and lines when code was found
    4. Sufficiency check - a wider retrieval and second answer when the
       first answer reports missing information
    """
    repository_id = resolve_repository_id(request.repository)
    history = [turn.model_dump() for turn in request.conversation_history]

    result = run_answer(request.message, repository_id, history)

    metadata = None
    if request.verbose:
        metadata = ChatMetadata(
            indexed=result.get("is_indexed", False),
            retrieval_calls=result.get("retrieval_calls", 0),
            generation_calls=result.get("generation_calls", 0),
            chunks_used=len(result.get("first_matches", [])) + len(result.get("additional_matches", [])),
            latency_ms=result.get("processing_time_ms", 0.0),
        )

    return ChatResponse(response=result.get("generation") or "", metadata=metadata)


@router.post("/api/index", response_model=IndexResponse, responses=ERROR_RESPONSES, tags=["Indexing"])
def index_endpoint(request: IndexRequest) -> IndexResponse:
    """
    Index a repository's default branch.

    Returns already_indexed=True without doing work when the repository is
    indexed or an index run is in progress.
    """
    repository_id = resolve_repository_id(request.repository)
    result = index_repository(repository_id)

    return IndexResponse(
        repository_id=result.repository_id,
        files_processed=result.files_processed,
        chunks_indexed=result.chunks_indexed,
        already_indexed=result.already_indexed,
    )


@router.get(
    "/api/repo/{owner}/{repo}",
    response_model=RepoInfoResponse,
    responses=ERROR_RESPONSES,
    tags=["Repository"],
)
def repo_info_endpoint(owner: str, repo: str) -> RepoInfoResponse:
    """Repository metadata, cached for an hour."""
    owner, repo = split_repository_id(f"{owner}/{repo}")
    info, cached = get_github_client().get_repo_info(owner, repo)
    return RepoInfoResponse(data=info, cached=cached)


@router.post("/api/repo/info", response_model=RepoInfoResponse, responses=ERROR_RESPONSES, tags=["Repository"])
def repo_info_by_url_endpoint(request: RepoInfoRequest) -> RepoInfoResponse:
    """Repository metadata looked up by GitHub URL."""
    parsed = parse_github_url(request.repo_url)
    if parsed is None:
        raise InvalidInput(f"Invalid GitHub URL: {request.repo_url}")

    info, cached = get_github_client().get_repo_info(*parsed)
    return RepoInfoResponse(data=info, cached=cached)


app = create_app()
