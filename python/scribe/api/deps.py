"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, authentication, etc.
"""

from fastapi import Request

from scribe.auth.middleware import get_api_principal, get_session_principal
from scribe.db.session import get_db, get_session_factory
from scribe.services.llm import LLMRouter

__all__ = [
    "get_api_principal",
    "get_db",
    "get_llm_router",
    "get_session_factory",
    "get_session_principal",
]


def get_llm_router(request: Request) -> LLMRouter:
    """Get the shared LLM router from app state.

    The router wraps the httpx.AsyncClient created in the app lifespan.
    """
    return request.app.state.llm_router
