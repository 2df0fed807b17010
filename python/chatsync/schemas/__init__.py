"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from chatsync.schemas.chat import (
    ChatCreateRequest,
    ChatOut,
    ChatSyncItem,
    ChatUpdateRequest,
    MessageCreateRequest,
    MessageOut,
    MessageSyncItem,
    MessageUpdateRequest,
)
from chatsync.schemas.memory import (
    MemoryCreateRequest,
    MemoryOut,
    MemorySyncItem,
    MemoryUpdateRequest,
)
from chatsync.schemas.sync import (
    BatchResult,
    PullResult,
    PushItemError,
    PushRequest,
    PushResults,
)

__all__ = [
    # Chat schemas
    "ChatOut",
    "ChatCreateRequest",
    "ChatUpdateRequest",
    "ChatSyncItem",
    # Message schemas
    "MessageOut",
    "MessageCreateRequest",
    "MessageUpdateRequest",
    "MessageSyncItem",
    # Memory schemas
    "MemoryOut",
    "MemoryCreateRequest",
    "MemoryUpdateRequest",
    "MemorySyncItem",
    # Sync schemas
    "PullResult",
    "PushRequest",
    "PushItemError",
    "BatchResult",
    "PushResults",
]
