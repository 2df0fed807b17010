"""Database sessions for request handlers and the sync engine.

Provides:
- get_db(): request-scoped session dependency
- transaction(): commit-or-rollback unit of work

Direct CRUD services wrap each mutation in one transaction. Sync push wraps
each pushed item in its own, so a failing item rolls back alone and the rest
of its batch still commits.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from chatsync.db.engine import get_engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Build a session factory on engine (the application engine by default).

    Objects stay loaded after commit: push keeps using the chats it applied
    earlier in the same request, and responses are built from committed rows.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory()
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request, closed afterwards."""
    with get_session_factory()() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Commit the work done in the block, or roll it back and re-raise.

    Usage:
        with transaction(db):
            ChatStore(db).soft_delete(chat, now)
            MessageStore(db).hard_delete_for_chat(owner_id, chat.id)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
