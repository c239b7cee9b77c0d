"""Structured logging built on structlog.

Every entry is one JSON object on stdout. Request-scoped fields are bound
through structlog's contextvars integration and merged into each event:

- request_id: X-Request-ID of the request being served
- path / method: raw request path (no query string) and HTTP method
- user_id / auth_scheme / token_id: bound once AuthMiddleware resolves the caller

Credentials that slip into an event (a `dnk_` secret or a Bearer header) are
masked by `mask_credentials` before rendering. Field names are policed
separately by scribe.services.redact.safe_kv.

Usage:
    from scribe.logging import get_logger

    logger = get_logger(__name__)
    logger.info("chunk_ingested", session_id=str(session_id), text_chars=len(text))
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars

_CREDENTIAL_PATTERN = re.compile(r"(Bearer\s+\S+|dnk_[0-9a-fA-F]{8,})")
_MASK = "[redacted]"

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def mask_credentials(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Replace bearer credentials and API token secrets in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str) and ("dnk_" in value or "Bearer" in value):
            event_dict[key] = _CREDENTIAL_PATTERN.sub(_MASK, value)
    return event_dict


def configure_logging(level: int = logging.INFO, json_format: bool = True) -> None:
    """Route structlog and stdlib logging through one rendering pipeline.

    Args:
        level: Root log level.
        json_format: JSON lines when True; the colored dev console otherwise.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(request_id: str, path: str, method: str) -> None:
    """Start a fresh request scope; anything bound by a previous request is dropped."""
    clear_contextvars()
    bind_contextvars(request_id=request_id, path=path, method=method)


def set_user_context(
    user_id: str, auth_scheme: str | None = None, token_id: str | None = None
) -> None:
    """Bind the authenticated caller to subsequent entries."""
    fields: dict[str, str] = {"user_id": user_id}
    if auth_scheme is not None:
        fields["auth_scheme"] = auth_scheme
    if token_id is not None:
        fields["token_id"] = token_id
    bind_contextvars(**fields)


def clear_request_context() -> None:
    clear_contextvars()


def get_request_id() -> str | None:
    return get_contextvars().get("request_id")
