"""
FastAPI REST API for repochat.

Endpoints:
    POST /api/chat - Answer a question about a repository
    POST /api/index - Index a repository
    GET /api/repo/{owner}/{repo} - Repository metadata
    POST /api/repo/info - Repository metadata by URL
    GET /health - Health check
"""

from repochat.api.main import app, create_app

__all__ = ["app", "create_app"]
