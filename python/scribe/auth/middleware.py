"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: resolves each request against the route table and runs the
  verifier for the scheme the matched route declares
- Principal: authenticated caller attached to request.state.principal
- get_session_principal / get_api_principal: route dependencies

Order of checks:
1. Documentation paths pass through
2. Resolve (method, path) against ROUTE_TABLE; no match → 404
3. Public routes pass through
4. Session routes: Bearer JWT → TokenVerifier
5. API-token routes: Bearer dnk_ token → digest lookup, then a detached
   last_used_at touch-up
6. Attach Principal to request state
"""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from scribe.api.dispatch import PUBLIC_PATHS, AuthScheme, resolve_route
from scribe.auth.tokens import API_TOKEN_PREFIX, touch_token_last_used, verify_api_token
from scribe.auth.verifier import TokenVerifier
from scribe.background import spawn_background
from scribe.errors import ApiError, ApiErrorCode, UnauthorizedError
from scribe.logging import get_logger, set_user_context
from scribe.responses import error_json_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "Bearer "
JWT_PREFIX = "ey"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Attributes:
        user_id: Owning identity (JWT sub, or the API token's owner).
        scheme: Credential kind that authenticated the request.
        token_id: API token id; None for session credentials.
    """

    user_id: UUID
    scheme: AuthScheme
    token_id: UUID | None = None


class AuthMiddleware(BaseHTTPMiddleware):
    """Route-table-driven authentication.

    The session factory is read from app.state so API token lookups use the
    same database as the route handlers.
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        path = request.url.path
        if path in PUBLIC_PATHS:
            return await call_next(request)

        resolved = resolve_route(request.method, path)
        if resolved is None:
            return error_json_response(ApiErrorCode.E_NOT_FOUND, "Not found", 404)

        scheme = resolved.spec.scheme
        if scheme == AuthScheme.PUBLIC:
            return await call_next(request)

        auth_header = request.headers.get(AUTHORIZATION_HEADER, "")
        try:
            if scheme == AuthScheme.SESSION:
                principal = await self._authenticate_session(auth_header)
            else:
                principal = await self._authenticate_api_token(request, auth_header)
        except ApiError as e:
            return error_json_response(e.code, e.message, e.status_code)

        request.state.principal = principal
        set_user_context(
            str(principal.user_id),
            auth_scheme=principal.scheme.value,
            token_id=str(principal.token_id) if principal.token_id else None,
        )
        return await call_next(request)

    async def _authenticate_session(self, auth_header: str) -> Principal:
        if not auth_header.startswith(BEARER_PREFIX + JWT_PREFIX):
            logger.warning("auth_failure", reason="missing_session_credential")
            raise UnauthorizedError(message="Missing authorization")

        token = auth_header[len(BEARER_PREFIX) :].strip()
        # PyJWKClient fetches keys synchronously
        payload = await run_in_threadpool(self.verifier.verify, token)
        return Principal(user_id=UUID(payload["sub"]), scheme=AuthScheme.SESSION)

    async def _authenticate_api_token(self, request: Request, auth_header: str) -> Principal:
        if not auth_header.startswith(BEARER_PREFIX + API_TOKEN_PREFIX):
            logger.warning("auth_failure", reason="invalid_api_token_format")
            raise UnauthorizedError(ApiErrorCode.E_INVALID_TOKEN_FORMAT, "Invalid API token format")

        raw_token = auth_header[len(BEARER_PREFIX) :].strip()
        session_factory = request.app.state.session_factory

        def lookup() -> tuple[UUID, UUID]:
            with session_factory() as db:
                return verify_api_token(db, raw_token)

        user_id, token_id = await run_in_threadpool(lookup)
        spawn_background(
            touch_token_last_used, session_factory, token_id, name="api_token_touch"
        )
        return Principal(user_id=user_id, scheme=AuthScheme.API_TOKEN, token_id=token_id)


def get_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise UnauthorizedError()
    return principal


def get_session_principal(request: Request) -> Principal:
    """FastAPI dependency for routes that require a logged-in user."""
    principal = get_principal(request)
    if principal.scheme != AuthScheme.SESSION:
        raise UnauthorizedError()
    return principal


def get_api_principal(request: Request) -> Principal:
    """FastAPI dependency for routes that require a device API token."""
    principal = get_principal(request)
    if principal.scheme != AuthScheme.API_TOKEN or principal.token_id is None:
        raise UnauthorizedError()
    return principal
