"""Entity stores: keyed access to chats, messages and memories.

Each store wraps a Session and exposes the operations the sync engine and the
direct CRUD services need:

- find_by_key: point lookup by composite key (tombstones included for chats)
- find_since: owner-scoped range query strictly newer than a watermark
- upsert: idempotent insert-or-overwrite, returning (entity, created)
- soft_delete (chats) / hard_delete (messages, memories)
- count_live (chats)

Stores flush but never commit; the caller owns the transaction.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatsync.db.models import Base, Chat, Memory, Message
from chatsync.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore(Generic[ModelT]):
    """Shared keyed-collection behaviour for one entity kind."""

    model: type[ModelT]
    key_fields: tuple[str, ...]
    mutable_fields: tuple[str, ...]

    def __init__(self, db: Session):
        self.db = db

    def find_by_key(self, **key: Any) -> ModelT | None:
        """Load one entity by its full composite key, or None."""
        return self.db.scalar(select(self.model).filter_by(**key))

    def insert(self, values: Mapping[str, Any]) -> ModelT:
        """Insert a new row. Raises IntegrityError if the key is taken."""
        entity = self.model(**values)
        self.db.add(entity)
        self.db.flush()
        return entity

    def overwrite(self, entity: ModelT, values: Mapping[str, Any]) -> ModelT:
        """Replace every mutable field present in values (last writer wins)."""
        for field in self.mutable_fields:
            if field in values:
                setattr(entity, field, values[field])
        self.db.flush()
        return entity

    def upsert(
        self,
        values: Mapping[str, Any],
        update_values: Mapping[str, Any] | None = None,
    ) -> tuple[ModelT, bool]:
        """Insert the entity or overwrite the stored copy.

        Applying the same values twice leaves the same stored state; the second
        call reports created=False rather than failing on the duplicate key.
        A concurrent insert of the same key between lookup and insert falls
        back to an overwrite.

        Args:
            values: Full row for an insert.
            update_values: Fields written when the row already exists.
                Defaults to values.

        Returns:
            Tuple of (entity, created).
        """
        key = {field: values[field] for field in self.key_fields}
        changes = values if update_values is None else update_values
        existing = self.find_by_key(**key)
        if existing is not None:
            return self.overwrite(existing, changes), False

        try:
            with self.db.begin_nested():
                entity = self.insert(values)
        except IntegrityError:
            existing = self.find_by_key(**key)
            if existing is None:
                raise
            logger.info("upsert_lost_insert_race", table=self.model.__tablename__, **key)
            return self.overwrite(existing, changes), False

        return entity, True


class ChatStore(EntityStore[Chat]):
    """Chats: soft-deleted, updated_at never moves backwards."""

    model = Chat
    key_fields = ("owner_id", "id")
    mutable_fields = ("title", "updated_at")

    def find_live(self, owner_id: str, chat_id: int) -> Chat | None:
        """Load a non-tombstoned chat owned by owner_id."""
        return self.db.scalar(
            select(Chat).where(
                Chat.owner_id == owner_id,
                Chat.id == chat_id,
                Chat.deleted_at.is_(None),
            )
        )

    def overwrite(self, entity: Chat, values: Mapping[str, Any]) -> Chat:
        merged = dict(values)
        incoming = merged.get("updated_at")
        if incoming is not None and incoming < entity.updated_at:
            merged["updated_at"] = entity.updated_at
        return super().overwrite(entity, merged)

    def touch(self, chat: Chat, now: datetime) -> None:
        """Bump updated_at to now unless it is already later."""
        if chat.updated_at < now:
            chat.updated_at = now
            self.db.flush()

    def find_since(self, owner_id: str, since: datetime | None) -> list[Chat]:
        """Live chats updated strictly after since, newest first."""
        stmt = select(Chat).where(Chat.owner_id == owner_id, Chat.deleted_at.is_(None))
        if since is not None:
            stmt = stmt.where(Chat.updated_at > since)
        stmt = stmt.order_by(Chat.updated_at.desc(), Chat.id.desc())
        return list(self.db.scalars(stmt))

    def list_live(self, owner_id: str, limit: int, offset: int = 0) -> list[Chat]:
        stmt = (
            select(Chat)
            .where(Chat.owner_id == owner_id, Chat.deleted_at.is_(None))
            .order_by(Chat.updated_at.desc(), Chat.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.scalars(stmt))

    def count_live(self, owner_id: str) -> int:
        """Number of non-tombstoned chats for owner_id."""
        result = self.db.scalar(
            select(func.count())
            .select_from(Chat)
            .where(Chat.owner_id == owner_id, Chat.deleted_at.is_(None))
        )
        return result or 0

    def soft_delete(self, chat: Chat, now: datetime) -> None:
        """Tombstone a chat. The row and its id stay."""
        chat.deleted_at = now
        if chat.updated_at < now:
            chat.updated_at = now
        self.db.flush()

    def soft_delete_all(self, owner_id: str, now: datetime) -> int:
        """Tombstone every live chat of owner_id. Returns the number tombstoned."""
        chats = list(
            self.db.scalars(
                select(Chat).where(Chat.owner_id == owner_id, Chat.deleted_at.is_(None))
            )
        )
        for chat in chats:
            chat.deleted_at = now
            if chat.updated_at < now:
                chat.updated_at = now
        self.db.flush()
        return len(chats)


class MessageStore(EntityStore[Message]):
    """Messages: keyed per (owner, chat), hard-deleted."""

    model = Message
    key_fields = ("owner_id", "chat_id", "id")
    mutable_fields = (
        "role",
        "content",
        "timestamp",
        "web_search_used",
        "image_base64",
        "image_path",
        "thinking_content",
        "is_thinking",
        "response_time_ms",
        "reaction",
        "generated_image_base64",
        "generated_image_prompt",
        "generated_image_model",
        "is_generating_image",
    )

    def find_since(
        self, owner_id: str, since: datetime, chat_ids: Iterable[int]
    ) -> list[Message]:
        """Messages of the given chats with timestamp strictly after since, oldest first."""
        chat_ids = list(chat_ids)
        if not chat_ids:
            return []
        stmt = (
            select(Message)
            .where(
                Message.owner_id == owner_id,
                Message.chat_id.in_(chat_ids),
                Message.timestamp > since,
            )
            .order_by(Message.timestamp.asc(), Message.chat_id.asc(), Message.id.asc())
        )
        return list(self.db.scalars(stmt))

    def list_for_chat(
        self, owner_id: str, chat_id: int, limit: int, offset: int = 0
    ) -> list[Message]:
        """Page through a chat newest-first, returning the page oldest-first."""
        stmt = (
            select(Message)
            .where(Message.owner_id == owner_id, Message.chat_id == chat_id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
            .offset(offset)
        )
        messages = list(self.db.scalars(stmt))
        messages.reverse()
        return messages

    def hard_delete(self, owner_id: str, chat_id: int, message_id: int) -> bool:
        result = self.db.execute(
            delete(Message).where(
                Message.owner_id == owner_id,
                Message.chat_id == chat_id,
                Message.id == message_id,
            )
        )
        return result.rowcount > 0

    def hard_delete_for_chat(self, owner_id: str, chat_id: int) -> int:
        result = self.db.execute(
            delete(Message).where(Message.owner_id == owner_id, Message.chat_id == chat_id)
        )
        return result.rowcount

    def hard_delete_for_owner(self, owner_id: str) -> int:
        result = self.db.execute(delete(Message).where(Message.owner_id == owner_id))
        return result.rowcount


class MemoryStore(EntityStore[Memory]):
    """Memories: keyed per owner, hard-deleted."""

    model = Memory
    key_fields = ("owner_id", "id")
    mutable_fields = ("content", "updated_at")

    def find_since(self, owner_id: str, since: datetime | None) -> list[Memory]:
        """Memories updated strictly after since (all when None), newest first."""
        stmt = select(Memory).where(Memory.owner_id == owner_id)
        if since is not None:
            stmt = stmt.where(Memory.updated_at > since)
        stmt = stmt.order_by(Memory.updated_at.desc(), Memory.id.desc())
        return list(self.db.scalars(stmt))

    def list_all(self, owner_id: str) -> list[Memory]:
        stmt = (
            select(Memory)
            .where(Memory.owner_id == owner_id)
            .order_by(Memory.created_at.desc(), Memory.id.desc())
        )
        return list(self.db.scalars(stmt))

    def hard_delete(self, owner_id: str, memory_id: int) -> bool:
        result = self.db.execute(
            delete(Memory).where(Memory.owner_id == owner_id, Memory.id == memory_id)
        )
        return result.rowcount > 0
