"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, authentication, etc.
"""

from chatsync.auth.middleware import Viewer, get_viewer
from chatsync.db.session import get_db, get_session_factory

__all__ = ["Viewer", "get_db", "get_session_factory", "get_viewer"]
