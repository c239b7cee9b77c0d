"""Uncaught-exception boundary inside the CORS and request-id layers.

Starlette's own catch-all handler runs in ServerErrorMiddleware, outside
every user middleware, so its 500 would leave without CORS or X-Request-ID
headers. This middleware renders the 500 envelope here instead, and the
outer layers decorate it like any other response.
"""

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from scribe.responses import unhandled_exception_handler


class UnhandledErrorMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def track_start(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, track_start)
        except Exception as exc:
            # Headers already went out; nothing valid can be sent now
            if response_started:
                raise
            response = await unhandled_exception_handler(Request(scope), exc)
            await response(scope, receive, send)
