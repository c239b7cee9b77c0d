"""Database sessions.

Route handlers get a request-scoped Session from `get_db`. Work that outlives
the request (background audit rows, token touch-ups) and the summarization
orchestrator open their own sessions from the app's session factory, so the
factory itself is also exposed as a dependency.
"""

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from functools import lru_cache

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from scribe.db.engine import get_engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    # Rows are serialized after commit; keep loaded attributes
    return sessionmaker(bind=engine or get_engine(), autoflush=False, expire_on_commit=False)


@lru_cache
def get_default_session_factory() -> sessionmaker[Session]:
    return create_session_factory()


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Session factory create_app() stored on app.state."""
    return request.app.state.session_factory


def get_db(request: Request) -> Generator[Session, None, None]:
    with get_session_factory(request)() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the block's writes, or roll back and re-raise.

    Usage:
        with session_factory() as db, transaction(db):
            db.add_all(rows)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
