"""Sync pull/push Pydantic schemas.

Push batches are accepted as raw JSON values and validated one item at a time
by the reconciler, so a single malformed item is reported in that batch's
error list instead of rejecting the whole request.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from chatsync.schemas.base import WireModel
from chatsync.schemas.chat import ChatOut, MessageOut
from chatsync.schemas.memory import MemoryOut


class PullResult(WireModel):
    """Everything an owner must apply to catch up since a watermark."""

    chats: list[ChatOut]
    messages: list[MessageOut]
    memories: list[MemoryOut]
    synced_at: datetime


class PushRequest(WireModel):
    """POST /sync body. Each batch is optional and reconciled independently."""

    chats: list[Any] | None = None
    messages: list[Any] | None = None
    memories: list[Any] | None = None


class PushItemError(WireModel):
    """Why one pushed item was not applied."""

    id: Any = None
    code: str
    error: str


class BatchResult(WireModel):
    """Outcome counts for one pushed batch."""

    created: int = 0
    updated: int = 0
    errors: list[PushItemError] = Field(default_factory=list)


class PushResults(WireModel):
    """Per-batch outcomes of a push."""

    chats: BatchResult = Field(default_factory=BatchResult)
    messages: BatchResult = Field(default_factory=BatchResult)
    memories: BatchResult = Field(default_factory=BatchResult)
