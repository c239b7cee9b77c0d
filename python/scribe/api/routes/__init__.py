"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
Every route registered here must also appear in scribe.api.dispatch.ROUTE_TABLE.
"""

from fastapi import APIRouter

from scribe.api.routes.health import router as health_router
from scribe.api.routes.sessions import router as sessions_router
from scribe.api.routes.summaries import router as summaries_router
from scribe.api.routes.tasks import router as tasks_router
from scribe.api.routes.tokens import router as tokens_router


def create_api_router() -> APIRouter:
    """Create and configure the API router."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(tokens_router)
    api_router.include_router(sessions_router)
    api_router.include_router(summaries_router)
    api_router.include_router(tasks_router)
    return api_router


__all__ = ["create_api_router"]
