"""Session credential verification.

Dashboard routes are called with a Supabase access token. The verifier turns
that JWT into claims or raises; it never touches the database.

Test-only verifiers live in tests/support/jwt_verifier.py.
"""

import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWK, PyJWKClient
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from scribe.errors import ApiError, ApiErrorCode, UnauthorizedError
from scribe.logging import get_logger

logger = get_logger(__name__)

CLOCK_SKEW_SECONDS = 60
SESSION_TOKEN_ALGORITHMS = ["RS256", "ES256"]
REQUIRED_CLAIMS = ["exp", "iss", "sub"]


class TokenVerifier(Protocol):
    def verify(self, token: str) -> dict[str, Any]:
        """Return the decoded claims of a valid session token.

        Raises:
            UnauthorizedError: Bad signature, expired, wrong iss/aud, or sub not a UUID.
            ApiError(E_AUTH_UNAVAILABLE): The identity provider's keys are unreachable.
        """
        ...


def _reject(reason: str, **fields: Any) -> UnauthorizedError:
    logger.warning("auth_failure", reason=reason, **fields)
    return UnauthorizedError()


class SupabaseJwksVerifier:
    """Verify Supabase access tokens against the project's JWKS.

    Keys are cached by PyJWKClient for cache_ttl seconds. A token whose kid
    is not in the cached set triggers one forced refresh before it is
    rejected, so key rotation does not lock users out for a full TTL.
    """

    def __init__(self, jwks_url: str, issuer: str, audiences: list[str], cache_ttl: int = 3600):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._lock = threading.Lock()

    def _client(self, force_new: bool = False) -> PyJWKClient:
        with self._lock:
            if force_new or self._jwks_client is None:
                self._jwks_client = PyJWKClient(
                    self.jwks_url, cache_keys=True, lifespan=self.cache_ttl
                )
            return self._jwks_client

    def _signing_key(self, token: str) -> PyJWK:
        try:
            return self._client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" not in str(e):
                raise
        logger.info("jwks_refresh", reason="kid_miss")
        try:
            return self._client(force_new=True).get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" in str(e):
                raise _reject("kid_not_found") from e
            raise

    def verify(self, token: str) -> dict[str, Any]:
        try:
            key = self._signing_key(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e
        except InvalidTokenError as e:
            raise _reject("malformed_token", error=str(e)) from e

        try:
            claims = jwt.decode(
                token,
                key.key,
                algorithms=SESSION_TOKEN_ALGORITHMS,
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except ExpiredSignatureError as e:
            raise _reject("expired_token") from e
        except InvalidTokenError as e:
            raise _reject("invalid_token", error=str(e)) from e

        try:
            UUID(str(claims["sub"]))
        except ValueError as e:
            raise _reject("invalid_sub") from e

        return claims
