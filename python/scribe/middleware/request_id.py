"""X-Request-ID correlation and access logging.

Pure ASGI, registered last so it wraps everything else: route-table 404s,
auth failures and CORS preflights all leave with an X-Request-ID header and
one `request_completed` entry.

AuthMiddleware runs in the same task, so the caller it binds to the log
context is still bound when the access entry is written. The context is not
cleared on exit; the next request starts a fresh scope.
"""

import re
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from scribe.logging import get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"

# Alphanumeric, dots, hyphens, underscores; at most 128 characters
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._-]{1,128}")
_UUID_SHAPE = re.compile(r"[0-9a-fA-F]{8}(-[0-9a-fA-F]{4}){3}-[0-9a-fA-F]{12}")

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Keep a well-formed client id (UUIDs lowercased), otherwise mint a UUID4."""
    if incoming and _ACCEPTED_ID.fullmatch(incoming):
        return incoming.lower() if _UUID_SHAPE.fullmatch(incoming) else incoming
    return str(uuid.uuid4())


class RequestIDMiddleware:
    def __init__(self, app: ASGIApp, log_requests: bool = True):
        self.app = app
        self.log_requests = log_requests

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        request_id = resolve_request_id(Headers(scope=scope).get(REQUEST_ID_HEADER))
        set_request_context(request_id, path=scope["path"], method=scope["method"])

        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:
            logger.exception("request_failed")
            raise

        if self.log_requests:
            logger.info(
                "request_completed",
                status_code=status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            )
