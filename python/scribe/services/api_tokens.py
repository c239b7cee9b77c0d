"""API token lifecycle service.

Handles device credentials for the mobile ingestion API:
- Create: mint a secret, store only its digest, return the plaintext once
- List: caller's tokens, newest first, never the digest
- Revoke: soft delete scoped by (id, user_id); idempotent

Security invariants:
- The plaintext secret is never persisted and never logged
- token_hash is never returned to clients
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from scribe.auth.tokens import generate_api_token, hash_api_token
from scribe.db.models import ApiToken
from scribe.errors import ApiErrorCode, InvalidRequestError
from scribe.logging import get_logger
from scribe.schemas.tokens import ApiTokenOut, TokenCreatedOut
from scribe.services.ids import parse_uuid
from scribe.services.rate_limit import TOKENS_PER_MINUTE, get_rate_limiter

logger = get_logger(__name__)

MAX_NAME_LENGTH = 100


def create_api_token(db: Session, user_id: UUID, name: object) -> TokenCreatedOut:
    """Create a named API token for the user.

    Raises:
        RateLimitedError: More than TOKENS_PER_MINUTE creations this minute.
        InvalidRequestError(E_NAME_INVALID): Name empty after trimming or too long.
    """
    get_rate_limiter().enforce(f"tokens:{user_id}", TOKENS_PER_MINUTE)

    if not isinstance(name, str) or not name.strip() or len(name) > MAX_NAME_LENGTH:
        raise InvalidRequestError(ApiErrorCode.E_NAME_INVALID, "name is required (max 100 chars)")

    raw_token = generate_api_token()
    token = ApiToken(user_id=user_id, name=name.strip(), token_hash=hash_api_token(raw_token))
    db.add(token)
    db.commit()

    logger.info("api_token_created", token_id=str(token.id))

    return TokenCreatedOut(
        token=raw_token,
        token_id=token.id,
        name=token.name,
        created_at=token.created_at,
    )


def list_api_tokens(db: Session, user_id: UUID) -> list[ApiTokenOut]:
    stmt = select(ApiToken).where(ApiToken.user_id == user_id).order_by(ApiToken.created_at.desc())
    return [ApiTokenOut.model_validate(token) for token in db.scalars(stmt)]


def revoke_api_token(db: Session, user_id: UUID, token_id: str) -> None:
    """Revoke one of the caller's tokens.

    Unknown ids, other users' tokens and already-revoked tokens are silent
    no-ops; the first revocation timestamp is kept.
    """
    parsed = parse_uuid(token_id)
    if parsed is None:
        return

    result = db.execute(
        update(ApiToken)
        .where(
            ApiToken.id == parsed,
            ApiToken.user_id == user_id,
            ApiToken.revoked_at.is_(None),
        )
        .values(revoked_at=datetime.now(UTC))
    )
    db.commit()

    if result.rowcount:
        logger.info("api_token_revoked", token_id=str(parsed))
