"""Database module for chatsync.

Provides engine creation, session management, transaction helpers, ORM models
and the per-kind entity stores.
"""

from chatsync.db.engine import create_db_engine, get_engine
from chatsync.db.models import (
    Base,
    Chat,
    EntityKind,
    IdCounter,
    Memory,
    Message,
    MessageRole,
)
from chatsync.db.session import get_db, transaction
from chatsync.db.stores import ChatStore, MemoryStore, MessageStore

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "EntityKind",
    "MessageRole",
    # Models
    "Chat",
    "Message",
    "Memory",
    "IdCounter",
    # Stores
    "ChatStore",
    "MessageStore",
    "MemoryStore",
]
