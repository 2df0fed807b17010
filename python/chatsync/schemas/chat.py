"""Chat and Message Pydantic schemas.

Contains request and response models for the chat and message endpoints and
the per-item shapes accepted by sync push.
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import Field, field_validator

from chatsync.db.models import MAX_CHAT_TITLE_LENGTH
from chatsync.schemas.base import WireModel

# Valid message roles - must match DB constraint
MESSAGE_ROLES = Literal["user", "assistant", "system"]

# Ids are client-minted sequence numbers stored in BIGINT columns
EntityId = Annotated[int, Field(ge=0, le=2**63 - 1)]

ChatTitle = Annotated[str, Field(min_length=1, max_length=MAX_CHAT_TITLE_LENGTH)]

DEFAULT_CHAT_TITLE = "New Chat"

_MESSAGE_FLAGS = ("web_search_used", "is_thinking", "is_generating_image")


# =============================================================================
# Response Schemas
# =============================================================================


class ChatOut(WireModel):
    """Response schema for a chat. Tombstoned chats are never serialized."""

    id: int
    title: str
    created_at: datetime
    updated_at: datetime


class MessageOut(WireModel):
    """Response schema for a message."""

    id: int
    chat_id: int
    role: str
    content: str
    timestamp: datetime
    web_search_used: bool
    image_base64: str | None = None
    image_path: str | None = None
    thinking_content: str | None = None
    is_thinking: bool
    response_time_ms: int | None = None
    reaction: str | None = None
    generated_image_base64: str | None = None
    generated_image_prompt: str | None = None
    generated_image_model: str | None = None
    is_generating_image: bool


# =============================================================================
# Request Schemas
# =============================================================================


class ChatCreateRequest(WireModel):
    """POST /chats. The server assigns the id."""

    title: ChatTitle = DEFAULT_CHAT_TITLE
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatUpdateRequest(WireModel):
    """PUT /chats/{chat_id}. updatedAt is always the server time."""

    title: ChatTitle | None = None


class MessageFields(WireModel):
    """Message payload shared by direct create and sync push."""

    role: MESSAGE_ROLES
    content: str = Field(min_length=1)
    timestamp: datetime | None = None
    web_search_used: bool = False
    image_base64: str | None = None
    image_path: str | None = None
    thinking_content: str | None = None
    is_thinking: bool = False
    response_time_ms: int | None = Field(default=None, ge=0)
    reaction: str | None = None
    generated_image_base64: str | None = None
    generated_image_prompt: str | None = None
    generated_image_model: str | None = None
    is_generating_image: bool = False

    @field_validator(*_MESSAGE_FLAGS, mode="before")
    @classmethod
    def _null_flag_is_false(cls, value):
        return False if value is None else value


class MessageCreateRequest(MessageFields):
    """POST /chats/{chat_id}/messages. The server assigns the id."""


class MessageUpdateRequest(WireModel):
    """PUT /chats/{chat_id}/messages/{message_id}. Only sent fields change."""

    reaction: str | None = None
    content: str | None = Field(default=None, min_length=1)
    is_thinking: bool | None = None
    thinking_content: str | None = None
    is_generating_image: bool | None = None
    generated_image_base64: str | None = None


# =============================================================================
# Sync Push Items
# =============================================================================


class ChatSyncItem(WireModel):
    """A chat pushed by a client, carrying the client-chosen id."""

    id: EntityId
    title: ChatTitle
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MessageSyncItem(MessageFields):
    """A message pushed by a client, carrying the client-chosen id and its chat."""

    id: EntityId
    chat_id: EntityId
