"""Route table and path matching.

Every API route is declared here with the credential scheme it requires.
AuthMiddleware resolves the incoming request against this table before any
handler runs: the first matching entry wins, an unmatched request is a 404,
and the entry's scheme decides which verifier is invoked.

FastAPI still owns handler dispatch; test_route_structure.py keeps the two
tables in lockstep.
"""

from dataclasses import dataclass
from enum import Enum


class AuthScheme(str, Enum):
    """Credential kind a route accepts."""

    PUBLIC = "public"
    SESSION = "session"  # Supabase JWT, a logged-in human
    API_TOKEN = "api_token"  # dnk_ token, a device


@dataclass(frozen=True)
class PathPattern:
    """A path template with `:name` parameter segments.

    Matching is by exact segment count; literal segments compare verbatim
    and parameter segments bind whatever non-empty value is present.
    """

    template: str

    @property
    def segments(self) -> tuple[str, ...]:
        return _split(self.template)

    @property
    def fastapi_path(self) -> str:
        """Equivalent FastAPI path, e.g. /sessions/{id}/chunks."""
        parts = [f"{{{s[1:]}}}" if s.startswith(":") else s for s in self.segments]
        return "/" + "/".join(parts)

    def match(self, path: str) -> dict[str, str] | None:
        """Return bound parameters, or None when the path does not fit."""
        incoming = _split(path)
        segments = self.segments
        if len(incoming) != len(segments):
            return None

        params: dict[str, str] = {}
        for expected, actual in zip(segments, incoming, strict=True):
            if expected.startswith(":"):
                params[expected[1:]] = actual
            elif expected != actual:
                return None
        return params


def _split(path: str) -> tuple[str, ...]:
    return tuple(s for s in path.split("/") if s)


def match_route(method: str, path: str, route_method: str, pattern: str) -> dict[str, str] | None:
    """Match a request against one (method, template) pair."""
    if method.upper() != route_method:
        return None
    return PathPattern(pattern).match(path)


@dataclass(frozen=True)
class RouteSpec:
    method: str
    pattern: PathPattern
    scheme: AuthScheme


@dataclass(frozen=True)
class ResolvedRoute:
    spec: RouteSpec
    params: dict[str, str]


def _route(method: str, template: str, scheme: AuthScheme) -> RouteSpec:
    return RouteSpec(method=method, pattern=PathPattern(template), scheme=scheme)


# Order matters: first match wins.
ROUTE_TABLE: tuple[RouteSpec, ...] = (
    _route("GET", "/health", AuthScheme.PUBLIC),
    # Token lifecycle (dashboard)
    _route("POST", "/tokens", AuthScheme.SESSION),
    _route("GET", "/tokens", AuthScheme.SESSION),
    _route("DELETE", "/tokens/:id", AuthScheme.SESSION),
    # Mobile ingestion
    _route("GET", "/sessions", AuthScheme.API_TOKEN),
    _route("POST", "/sessions", AuthScheme.API_TOKEN),
    _route("PATCH", "/sessions/:id", AuthScheme.API_TOKEN),
    _route("POST", "/sessions/:id/chunks", AuthScheme.API_TOKEN),
    _route("POST", "/sessions/:id/summarize", AuthScheme.API_TOKEN),
    _route("GET", "/sessions/:id/summaries", AuthScheme.API_TOKEN),
    # Dashboard summarization and task tracking
    _route("POST", "/summarize", AuthScheme.SESSION),
    _route("GET", "/action-items", AuthScheme.SESSION),
    _route("PATCH", "/action-items/:id", AuthScheme.SESSION),
    _route("PATCH", "/reminders/:id", AuthScheme.SESSION),
)

# Documentation endpoints served by FastAPI itself
PUBLIC_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})


def resolve_route(
    method: str, path: str, table: tuple[RouteSpec, ...] = ROUTE_TABLE
) -> ResolvedRoute | None:
    for spec in table:
        params = match_route(method, path, spec.method, spec.pattern.template)
        if params is not None:
            return ResolvedRoute(spec=spec, params=params)
    return None
