"""Reconciler: watermark pull and batch push between devices and the server.

Pull returns every live chat, message and memory newer than the caller's
watermark plus a fresh watermark (syncedAt). syncedAt is read before the
queries run, so a write that commits during a pull is returned again next
time rather than skipped.

Push applies client-authored batches with client-chosen ids. Each item is
validated, applied and committed on its own; a failing item is rolled back,
recorded in its batch's error list, and the rest of the batch continues.
Pushing the same payload twice leaves the same stored state.

Tombstoned chats never appear in a pull. A client that wants to learn about
deletions must re-list from scratch.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatsync.config import get_settings
from chatsync.db.session import transaction
from chatsync.db.stores import ChatStore, MemoryStore, MessageStore
from chatsync.errors import ApiError, ApiErrorCode, InvalidRequestError, NotFoundError
from chatsync.logging import get_logger
from chatsync.schemas.chat import ChatSyncItem, MessageSyncItem
from chatsync.schemas.memory import MemorySyncItem
from chatsync.schemas.sync import (
    BatchResult,
    PullResult,
    PushItemError,
    PushRequest,
    PushResults,
)
from chatsync.services.chats import chat_to_out
from chatsync.services.memories import memory_to_out
from chatsync.services.messages import message_to_out, message_values

logger = get_logger(__name__)


def parse_watermark(value: str | None) -> datetime | None:
    """Parse a `since` query value into an aware UTC datetime.

    Accepts ISO-8601 with or without an offset ("Z" included). A value without
    an offset is read as UTC. None or an empty string means "from scratch".

    Raises:
        InvalidRequestError(E_INVALID_WATERMARK): Value is not an ISO-8601 timestamp.
    """
    if value is None or value.strip() == "":
        return None

    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError) as e:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_WATERMARK,
            f"Invalid since timestamp: {value!r}",
        ) from e


def pull(
    db: Session,
    owner_id: str,
    since: datetime | None,
    now: datetime | None = None,
) -> PullResult:
    """Return everything changed for owner_id strictly after since.

    Without a watermark: all live chats and all memories, and no messages
    (clients page messages per chat). With a watermark: live chats updated
    after it, messages of those chats with a later timestamp, and memories
    updated after it.
    """
    synced_at = now or datetime.now(UTC)

    chats = ChatStore(db).find_since(owner_id, since)
    if since is None:
        messages = []
    else:
        messages = MessageStore(db).find_since(owner_id, since, [c.id for c in chats])
    memories = MemoryStore(db).find_since(owner_id, since)

    logger.info(
        "sync_pull_completed",
        since=since.isoformat() if since else None,
        chats=len(chats),
        messages=len(messages),
        memories=len(memories),
    )

    return PullResult(
        chats=[chat_to_out(c) for c in chats],
        messages=[message_to_out(m) for m in messages],
        memories=[memory_to_out(m) for m in memories],
        synced_at=synced_at,
    )


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


def _item_id(raw: Any) -> Any:
    return raw.get("id") if isinstance(raw, dict) else None


def _apply_batch(
    db: Session,
    kind: str,
    items: list[Any] | None,
    apply: Callable[[Any], bool],
) -> BatchResult:
    """Apply each item in its own transaction, collecting per-item failures."""
    result = BatchResult()

    for raw in items or []:
        try:
            with transaction(db):
                created = apply(raw)
        except ValidationError as e:
            error = PushItemError(
                id=_item_id(raw),
                code=ApiErrorCode.E_VALIDATION_FAILED.value,
                error=_validation_message(e),
            )
        except ApiError as e:
            error = PushItemError(id=_item_id(raw), code=e.code.value, error=e.message)
        except IntegrityError as e:
            error = PushItemError(
                id=_item_id(raw),
                code=ApiErrorCode.E_ID_CONFLICT.value,
                error=f"Integrity error: {e.orig}",
            )
        except SQLAlchemyError as e:
            logger.exception("sync_push_item_db_error", kind=kind, item_id=_item_id(raw))
            error = PushItemError(
                id=_item_id(raw),
                code=ApiErrorCode.E_INTERNAL.value,
                error=f"Database error: {type(e).__name__}",
            )
        except Exception:
            logger.exception(
                "sync_push_item_unexpected_error", kind=kind, item_id=_item_id(raw)
            )
            error = PushItemError(
                id=_item_id(raw),
                code=ApiErrorCode.E_INTERNAL.value,
                error="Internal error",
            )
        else:
            if created:
                result.created += 1
            else:
                result.updated += 1
            continue

        logger.warning(
            "sync_push_item_failed",
            kind=kind,
            item_id=error.id,
            code=error.code,
            error=error.error,
        )
        result.errors.append(error)

    return result


def push(
    db: Session,
    owner_id: str,
    request: PushRequest,
    now: datetime | None = None,
) -> PushResults:
    """Apply pushed chats, then messages, then memories.

    Chats go first so that messages for a chat created in the same push find
    it. Chat upserts bypass the live-chat quota. Overwriting an existing chat
    stamps its updatedAt with server time, never moving it backwards. A chat id
    that is already tombstoned stays tombstoned: the push overwrites its fields
    but does not bring it back.

    Raises:
        InvalidRequestError(E_BATCH_TOO_LARGE): A batch exceeds PUSH_MAX_BATCH_ITEMS.
            Nothing is applied in that case.
    """
    now = now or datetime.now(UTC)
    max_items = get_settings().push_max_batch_items
    for kind, items in (
        ("chats", request.chats),
        ("messages", request.messages),
        ("memories", request.memories),
    ):
        if items and len(items) > max_items:
            raise InvalidRequestError(
                ApiErrorCode.E_BATCH_TOO_LARGE,
                f"{kind} batch has {len(items)} items (max {max_items})",
            )

    chats = ChatStore(db)
    messages = MessageStore(db)
    memories = MemoryStore(db)

    def apply_chat(raw: Any) -> bool:
        item = ChatSyncItem.model_validate(raw)
        # Client updatedAt only seeds a new chat; overwrites take server time
        _, created = chats.upsert(
            {
                "owner_id": owner_id,
                "id": item.id,
                "title": item.title,
                "created_at": item.created_at or now,
                "updated_at": item.updated_at or now,
            },
            update_values={"title": item.title, "updated_at": now},
        )
        return created

    def apply_message(raw: Any) -> bool:
        item = MessageSyncItem.model_validate(raw)
        chat = chats.find_live(owner_id, item.chat_id)
        values = {
            "owner_id": owner_id,
            "chat_id": item.chat_id,
            "id": item.id,
            **message_values(item, now),
        }

        existing = messages.find_by_key(owner_id=owner_id, chat_id=item.chat_id, id=item.id)
        if existing is None:
            if chat is None:
                raise NotFoundError(
                    ApiErrorCode.E_CHAT_NOT_FOUND, f"Chat {item.chat_id} not found"
                )
            _, created = messages.upsert(values)
        else:
            messages.overwrite(existing, values)
            created = False

        if chat is not None:
            chats.touch(chat, now)
        return created

    def apply_memory(raw: Any) -> bool:
        item = MemorySyncItem.model_validate(raw)
        _, created = memories.upsert(
            {
                "owner_id": owner_id,
                "id": item.id,
                "content": item.content,
                "created_at": item.created_at or now,
                "updated_at": item.updated_at or now,
            }
        )
        return created

    results = PushResults(
        chats=_apply_batch(db, "chats", request.chats, apply_chat),
        messages=_apply_batch(db, "messages", request.messages, apply_message),
        memories=_apply_batch(db, "memories", request.memories, apply_memory),
    )

    logger.info(
        "sync_push_completed",
        chats_created=results.chats.created,
        chats_updated=results.chats.updated,
        messages_created=results.messages.created,
        messages_updated=results.messages.updated,
        memories_created=results.memories.created,
        memories_updated=results.memories.updated,
        errors=sum(len(b.errors) for b in (results.chats, results.messages, results.memories)),
    )
    return results
