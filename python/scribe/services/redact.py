"""Log field guard and hashing.

Never logged: API token secrets, Bearer credentials, rendered prompts,
transcript text. A field is rejected when its name is one of FORBIDDEN_NAMES
or ends in `_<name>` (chunk_text, raw_token), unless it carries a redacted
suffix (text_chars, token_sha256).
"""

import hashlib
import os

import structlog

FORBIDDEN_NAMES = frozenset(
    {
        "api_key",
        "authorization",
        "bearer",
        "content",
        "password",
        "prompt",
        "raw_body",
        "secret",
        "text",
        "token",
        "transcript",
    }
)

REDACTED_SUFFIXES = ("_chars", "_length", "_hash", "_sha256")

STRICT_ENVIRONMENTS = ("local", "test")


def hash_text(value: str) -> str:
    """SHA-256 hex digest; the stored form of an API token and a safe log correlator."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def is_forbidden_key(key: str) -> bool:
    if key.endswith(REDACTED_SUFFIXES):
        return False
    return key in FORBIDDEN_NAMES or any(key.endswith("_" + name) for name in FORBIDDEN_NAMES)


def safe_kv(*, _env: str | None = None, **kwargs) -> dict:
    """Return kwargs unchanged after checking every key is loggable.

    A forbidden key raises ValueError under SCRIBE_ENV local/test, so the
    mistake fails a test; elsewhere it is reported as `safe_kv_violation`
    and the entry is still written.

        logger.info("chunk_ingested", **safe_kv(session_id=sid, text_chars=len(text)))
    """
    violations = sorted(key for key in kwargs if is_forbidden_key(key))
    if not violations:
        return kwargs

    env = _env or os.environ.get("SCRIBE_ENV", "local")
    if env in STRICT_ENVIRONMENTS:
        raise ValueError(f"Forbidden log keys without redacted suffix: {violations}")

    structlog.get_logger(__name__).warning("safe_kv_violation", forbidden_keys=violations)
    return kwargs
