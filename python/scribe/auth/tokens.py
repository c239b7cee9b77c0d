"""API token secrets and verification.

A token secret is `dnk_` followed by 64 hex characters (256 bits from the
OS CSPRNG). Only its SHA-256 hex digest is ever stored; the plaintext is
returned to the caller once, at creation.
"""

import secrets
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from scribe.db.models import ApiToken
from scribe.errors import ApiErrorCode, UnauthorizedError
from scribe.logging import get_logger
from scribe.services.redact import hash_text

logger = get_logger(__name__)

API_TOKEN_PREFIX = "dnk_"
TOKEN_ENTROPY_BYTES = 32


def generate_api_token() -> str:
    return API_TOKEN_PREFIX + secrets.token_hex(TOKEN_ENTROPY_BYTES)


def hash_api_token(raw_token: str) -> str:
    return hash_text(raw_token)


def verify_api_token(db: Session, raw_token: str) -> tuple[UUID, UUID]:
    """Resolve a presented API token to its owner.

    Returns:
        (user_id, token_id) of the active token.

    Raises:
        UnauthorizedError: E_INVALID_TOKEN_FORMAT when the prefix is absent,
            E_INVALID_TOKEN when no token matches the digest, E_TOKEN_REVOKED
            when the match has been revoked.
    """
    if not raw_token.startswith(API_TOKEN_PREFIX):
        raise UnauthorizedError(ApiErrorCode.E_INVALID_TOKEN_FORMAT, "Invalid API token format")

    row = db.execute(
        select(ApiToken.id, ApiToken.user_id, ApiToken.revoked_at).where(
            ApiToken.token_hash == hash_api_token(raw_token)
        )
    ).first()

    if row is None:
        logger.warning("auth_failure", reason="unknown_api_token")
        raise UnauthorizedError(ApiErrorCode.E_INVALID_TOKEN, "Invalid API token")
    if row.revoked_at is not None:
        logger.warning("auth_failure", reason="revoked_api_token", token_id=str(row.id))
        raise UnauthorizedError(ApiErrorCode.E_TOKEN_REVOKED, "Token has been revoked")

    return row.user_id, row.id


def touch_token_last_used(session_factory: sessionmaker[Session], token_id: UUID) -> None:
    """Stamp last_used_at for a token. Failures are logged, never raised."""
    try:
        with session_factory() as db:
            db.execute(
                update(ApiToken)
                .where(ApiToken.id == token_id)
                .values(last_used_at=datetime.now(UTC))
            )
            db.commit()
    except Exception as e:
        logger.warning("api_token_touch_failed", token_id=str(token_id), error=str(e))
