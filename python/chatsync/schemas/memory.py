"""Memory Pydantic schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import Field

from chatsync.db.models import MAX_MEMORY_CONTENT_LENGTH
from chatsync.schemas.base import WireModel
from chatsync.schemas.chat import EntityId

MemoryContent = Annotated[str, Field(min_length=1, max_length=MAX_MEMORY_CONTENT_LENGTH)]


class MemoryOut(WireModel):
    """Response schema for a memory note."""

    id: int
    content: str
    created_at: datetime
    updated_at: datetime


class MemoryCreateRequest(WireModel):
    """POST /memories. The server assigns the id."""

    content: MemoryContent
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MemoryUpdateRequest(WireModel):
    """PUT /memories/{memory_id}."""

    content: MemoryContent


class MemorySyncItem(WireModel):
    """A memory pushed by a client, carrying the client-chosen id."""

    id: EntityId
    content: MemoryContent
    created_at: datetime | None = None
    updated_at: datetime | None = None
