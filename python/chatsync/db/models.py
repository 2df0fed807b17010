"""SQLAlchemy ORM models for chatsync.

Defines all database tables using SQLAlchemy 2.x declarative patterns.

Every entity is keyed by a composite primary key that starts with owner_id;
the integer id column is chosen by the client (sync push) or by the id
allocator (direct create) and is never auto-incremented by the database.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MAX_OWNER_ID_LENGTH = 128
MAX_CHAT_TITLE_LENGTH = 500
MAX_MEMORY_CONTENT_LENGTH = 500


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC.

    PostgreSQL stores TIMESTAMPTZ natively; SQLite drops tzinfo, so values are
    normalized to UTC on the way in and re-tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class MessageRole(str, PyEnum):
    """Who authored a message."""

    user = "user"
    assistant = "assistant"
    system = "system"


class EntityKind(str, PyEnum):
    """Entity kinds that carry allocated ids."""

    chat = "chat"
    message = "message"
    memory = "memory"


# =============================================================================
# Models
# =============================================================================


class Chat(Base):
    """A chat thread.

    deleted_at marks a tombstone: the row stays so its id is never handed out
    again, but the chat is excluded from listings and pulls.
    """

    __tablename__ = "chats"

    owner_id: Mapped[str] = mapped_column(String(MAX_OWNER_ID_LENGTH), primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    title: Mapped[str] = mapped_column(String(MAX_CHAT_TITLE_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_chats_owner_updated_at", "owner_id", "updated_at"),
        Index("ix_chats_owner_deleted_at", "owner_id", "deleted_at"),
    )


class Message(Base):
    """A message within a chat.

    Ids are unique per (owner, chat): two chats may both hold a message 1.
    Messages are hard-deleted, including when their chat is tombstoned.
    """

    __tablename__ = "messages"

    owner_id: Mapped[str] = mapped_column(String(MAX_OWNER_ID_LENGTH), primary_key=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    web_search_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    image_base64: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    thinking_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_thinking: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reaction: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_image_base64: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_image_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_image_model: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_generating_image: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["owner_id", "chat_id"],
            ["chats.owner_id", "chats.id"],
            ondelete="CASCADE",
            name="fk_messages_chat",
        ),
        CheckConstraint(
            "role IN ('user', 'assistant', 'system')",
            name="ck_messages_role",
        ),
        Index("ix_messages_owner_chat_timestamp", "owner_id", "chat_id", "timestamp"),
        Index("ix_messages_owner_timestamp", "owner_id", "timestamp"),
    )


class Memory(Base):
    """A short memory note about the owner. No tombstones."""

    __tablename__ = "memories"

    owner_id: Mapped[str] = mapped_column(String(MAX_OWNER_ID_LENGTH), primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    content: Mapped[str] = mapped_column(String(MAX_MEMORY_CONTENT_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("ix_memories_owner_created_at", "owner_id", "created_at"),
        Index("ix_memories_owner_updated_at", "owner_id", "updated_at"),
    )


class IdCounter(Base):
    """Per-scope id counter used by the counter allocation strategy.

    chat_id is 0 for owner-scoped kinds (chat, memory).
    """

    __tablename__ = "id_counters"

    owner_id: Mapped[str] = mapped_column(String(MAX_OWNER_ID_LENGTH), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    next_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
