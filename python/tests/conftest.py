"""Pytest configuration and fixtures for chatsync tests.

Test isolation strategy:
- Every test gets its own in-memory SQLite database (schema via create_all)
- Service and store tests use db_session directly
- Route tests use client with auth middleware and test JWT tokens; they seed
  rows through factories (which commit) and assert through the API
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

os.environ["CHATSYNC_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_JSON"] = "false"

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from chatsync.app import add_request_id_middleware, create_app
from chatsync.config import clear_settings_cache
from chatsync.db.engine import create_db_engine
from chatsync.db.models import Base
from chatsync.db.session import create_session_factory, get_db
from tests.helpers import create_test_owner_id
from tests.support.mock_verifier import MockJwtVerifier


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory database with the full schema."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a database session bound to the per-test database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(session_factory: sessionmaker[Session]) -> FastAPI:
    """FastAPI app with auth middleware using the test verifier.

    Request sessions come from the per-test database.
    """
    app = create_app(token_verifier=MockJwtVerifier())

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client for the authenticated app. Use auth_headers() per request."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def owner_id() -> str:
    return create_test_owner_id()


@pytest.fixture
def other_owner_id() -> str:
    return create_test_owner_id()


@pytest.fixture
def log_sink():
    """Configure structlog to capture events into a list.

    Returns a list that will contain all emitted log event dicts.
    After the test, structlog is reset to normal.
    """
    events: list[dict] = []
    original_config = structlog.get_config()

    def capture_processor(logger, method_name, event_dict):
        event_dict["log_level"] = method_name
        events.append(event_dict.copy())
        raise structlog.DropEvent

    structlog.configure(
        processors=[capture_processor],
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    yield events

    structlog.configure(**original_config)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
