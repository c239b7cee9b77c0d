"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST (by add_request_id_middleware) so it
  runs FIRST (outermost)

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. CORSMiddleware (answers OPTIONS, adds Access-Control-Allow-Origin)
3. UnhandledErrorMiddleware (uncaught exceptions → JSON 500)
4. AuthMiddleware (route table lookup, credential verification)
5. Route handler

LLM Client Lifecycle:
- httpx.AsyncClient is created at startup, stored in app.state
- LLMRouter wraps the shared client for connection pooling
- Client is closed gracefully at shutdown, after in-flight background
  writes have drained
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session, sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from scribe.api.routes import create_api_router
from scribe.auth.middleware import AuthMiddleware
from scribe.auth.verifier import SupabaseJwksVerifier, TokenVerifier
from scribe.background import drain_background
from scribe.config import get_settings
from scribe.db.session import get_default_session_factory
from scribe.errors import ApiError
from scribe.logging import configure_logging, get_logger
from scribe.middleware.cors import CORSMiddleware
from scribe.middleware.errors import UnhandledErrorMiddleware
from scribe.middleware.request_id import RequestIDMiddleware
from scribe.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from scribe.services.llm import LLMRouter
from scribe.services.rate_limit import RedisRateLimiter, set_rate_limiter

logger = get_logger(__name__)

BACKGROUND_DRAIN_TIMEOUT_S = 5.0


def create_token_verifier() -> SupabaseJwksVerifier:
    """Create the session token verifier using Supabase JWKS.

    All environments use the same verifier; only the configuration values
    (JWKS URL, issuer, audiences) change.
    """
    settings = get_settings()

    return SupabaseJwksVerifier(
        jwks_url=settings.supabase_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


def _install_redis_rate_limiter(redis_url: str):
    try:
        import redis

        client = redis.Redis.from_url(redis_url, decode_responses=True, socket_timeout=5)
        client.ping()
    except Exception as e:
        logger.warning("redis_client_init_failed", error=str(e))
        return None

    set_rate_limiter(RedisRateLimiter(client))
    logger.info("redis_rate_limiter_enabled")
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle resources.

    - Creates shared httpx.AsyncClient and the LLMRouter around it
    - Installs the Redis rate limiter when REDIS_URL is set
    - Cleans up on shutdown
    """
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(float(settings.llm_timeout_s), connect=10.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )
    app.state.llm_router = LLMRouter(
        app.state.httpx_client,
        gateway_url=settings.llm_gateway_url,
        api_key=settings.llm_api_key,
        timeout_s=settings.llm_timeout_s,
    )
    logger.info(
        "llm_router_initialized",
        summary_model=settings.summary_model,
        gateway_key_configured=bool(settings.llm_api_key),
    )

    redis_client = None
    if settings.redis_url:
        redis_client = _install_redis_rate_limiter(settings.redis_url)

    yield

    await drain_background(timeout=BACKGROUND_DRAIN_TIMEOUT_S)
    await app.state.httpx_client.aclose()
    if redis_client is not None:
        try:
            redis_client.close()
        except Exception as e:
            logger.warning("redis_client_close_failed", error=str(e))
    logger.info("httpx_client_closed")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom session token verifier (for testing).
        session_factory: Optional session factory (for testing); defaults to
            one bound to DATABASE_URL.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Scribe API",
        description="Transcript ingestion and meeting summarization API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory or get_default_session_factory()

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        verifier = token_verifier or create_token_verifier()
        app.add_middleware(AuthMiddleware, verifier=verifier)
        logger.info("auth_middleware_enabled", env=settings.scribe_env.value)

    # Outside auth, inside CORS: uncaught exceptions become a decorated 500
    app.add_middleware(UnhandledErrorMiddleware)

    # Added after auth so preflights never reach it
    app.add_middleware(CORSMiddleware, allow_headers=settings.cors_allow_headers)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
