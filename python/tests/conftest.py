"""Pytest configuration and fixtures for Scribe tests.

Test isolation strategy:
- Every test gets its own SQLite database file (schema from the ORM metadata)
- The app is built with MockJwtVerifier and the test session factory
- Rate limit counters start empty for every test
- The LLM gateway URL points at a host that only respx (or a stub adapter)
  ever answers
"""

import os

# Settings are read lazily; these must be in place before create_app() runs.
os.environ.setdefault("SCRIBE_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWKS_URL", "https://auth.test/auth/v1/.well-known/jwks.json")
os.environ.setdefault("SUPABASE_ISSUER", "test-issuer")
os.environ.setdefault("SUPABASE_AUDIENCES", "test-audience")
os.environ["LLM_GATEWAY_URL"] = "https://llm-gateway.test/v1/chat/completions"
os.environ.setdefault("LLM_API_KEY", "test-gateway-key")
os.environ.pop("REDIS_URL", None)

from collections.abc import Generator  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from scribe.app import add_request_id_middleware, create_app  # noqa: E402
from scribe.background import drain_background  # noqa: E402
from scribe.config import clear_settings_cache  # noqa: E402
from scribe.db.models import Base  # noqa: E402
from scribe.db.session import create_session_factory  # noqa: E402
from scribe.services.rate_limit import InMemoryRateLimiter, set_rate_limiter  # noqa: E402
from tests.helpers import create_api_token, create_test_user_id  # noqa: E402
from tests.support.jwt_verifier import MockJwtVerifier  # noqa: E402


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """SQLite engine over a per-test database file.

    A file (not :memory:) so threadpool workers and background writers share
    one database.
    """
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'scribe.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Direct database access for arranging data and asserting on it."""
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def rate_limiter() -> Generator[InMemoryRateLimiter, None, None]:
    """Install a fresh process-local limiter for each test."""
    limiter = InMemoryRateLimiter()
    set_rate_limiter(limiter)
    yield limiter
    set_rate_limiter(None)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


@pytest.fixture
def app(session_factory: sessionmaker[Session], test_verifier: MockJwtVerifier) -> FastAPI:
    """Full app: request id, CORS and auth middleware over the test database."""
    app = create_app(token_verifier=test_verifier, session_factory=session_factory)
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client with the lifespan running (LLM router, httpx client)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def drain(client: TestClient):
    """Wait for detached background writes spawned by earlier requests."""

    def _drain() -> None:
        client.portal.call(drain_background)

    return _drain


@pytest.fixture
def test_user_id() -> UUID:
    return create_test_user_id()


@pytest.fixture
def api_token(client: TestClient, test_user_id: UUID) -> str:
    """Plaintext dnk_ token owned by test_user_id."""
    return create_api_token(client, test_user_id)


@pytest.fixture
def random_uuid() -> str:
    return str(uuid4())
