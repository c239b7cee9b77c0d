"""Pure ASGI CORS middleware.

- OPTIONS on any path is answered immediately with permissive headers,
  before auth or routing run.
- Every other response gets `Access-Control-Allow-Origin: *`.
- Pure ASGI (not BaseHTTPMiddleware) so the request body and response are
  never buffered here.
"""

from starlette.datastructures import MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

ALLOW_METHODS = "GET, POST, PATCH, DELETE, OPTIONS"


class CORSMiddleware:
    """Allow any origin on every path."""

    def __init__(self, app: ASGIApp, allow_headers: str):
        self.app = app
        self.allow_headers = allow_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(
                status_code=200,
                content="ok",
                headers={
                    "access-control-allow-origin": "*",
                    "access-control-allow-headers": self.allow_headers,
                    "access-control-allow-methods": ALLOW_METHODS,
                },
            )
            await response(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["access-control-allow-origin"] = "*"
                headers.append("access-control-expose-headers", "X-Request-ID")
            await send(message)

        await self.app(scope, receive, send_with_cors)
