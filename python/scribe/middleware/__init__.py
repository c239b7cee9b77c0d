"""Middleware modules for the Scribe API."""

from scribe.middleware.cors import CORSMiddleware
from scribe.middleware.errors import UnhandledErrorMiddleware
from scribe.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = ["CORSMiddleware", "RequestIDMiddleware", "REQUEST_ID_HEADER", "UnhandledErrorMiddleware"]
