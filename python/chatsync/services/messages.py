"""Message service layer.

Direct message operations inside one chat. Every write that lands a message
bumps the owning chat's updated_at so the chat shows up in the next pull.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from chatsync.db.models import Message
from chatsync.db.session import transaction
from chatsync.db.stores import ChatStore, MessageStore
from chatsync.errors import ApiErrorCode, NotFoundError
from chatsync.logging import get_logger
from chatsync.schemas.chat import (
    MessageCreateRequest,
    MessageFields,
    MessageOut,
    MessageUpdateRequest,
)
from chatsync.services.chats import get_live_chat_or_404
from chatsync.services.ids import IdScope, create_with_next_id

logger = get_logger(__name__)

DEFAULT_LIMIT = 200
MAX_LIMIT = 200


def message_to_out(message: Message) -> MessageOut:
    """Convert Message ORM model to MessageOut schema."""
    return MessageOut(
        id=message.id,
        chat_id=message.chat_id,
        role=message.role,
        content=message.content,
        timestamp=message.timestamp,
        web_search_used=message.web_search_used,
        image_base64=message.image_base64,
        image_path=message.image_path,
        thinking_content=message.thinking_content,
        is_thinking=message.is_thinking,
        response_time_ms=message.response_time_ms,
        reaction=message.reaction,
        generated_image_base64=message.generated_image_base64,
        generated_image_prompt=message.generated_image_prompt,
        generated_image_model=message.generated_image_model,
        is_generating_image=message.is_generating_image,
    )


def message_values(payload: MessageFields, now: datetime) -> dict[str, Any]:
    """Stored column values for a message payload. A missing timestamp means now."""
    values = payload.model_dump(exclude={"id", "chat_id"})
    if values["timestamp"] is None:
        values["timestamp"] = now
    return values


def list_messages(
    db: Session,
    owner_id: str,
    chat_id: int,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> list[MessageOut]:
    """List one page of a chat's messages, oldest first within the page.

    Offset 0 is the most recent page.

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist or is tombstoned.
    """
    get_live_chat_or_404(db, owner_id, chat_id)
    messages = MessageStore(db).list_for_chat(
        owner_id, chat_id, limit=min(limit, MAX_LIMIT), offset=offset
    )
    return [message_to_out(m) for m in messages]


def create_message(
    db: Session,
    owner_id: str,
    chat_id: int,
    request: MessageCreateRequest,
    now: datetime | None = None,
) -> MessageOut:
    """Append a message with a server-allocated id and bump the chat.

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist or is tombstoned.
        ConflictError(E_ID_CONFLICT): Id allocation kept colliding.
    """
    now = now or datetime.now(UTC)
    chat = get_live_chat_or_404(db, owner_id, chat_id)
    values = message_values(request, now)

    with transaction(db):
        message = create_with_next_id(
            db,
            IdScope.for_message(owner_id, chat_id),
            lambda message_id: Message(owner_id=owner_id, chat_id=chat_id, id=message_id, **values),
        )
        ChatStore(db).touch(chat, now)

    logger.info("message_created", chat_id=chat_id, message_id=message.id, role=message.role)
    return message_to_out(message)


def update_message(
    db: Session,
    owner_id: str,
    chat_id: int,
    message_id: int,
    request: MessageUpdateRequest,
    now: datetime | None = None,
) -> MessageOut:
    """Apply a partial update. Only fields present in the request body change.

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist or is tombstoned.
        NotFoundError(E_MESSAGE_NOT_FOUND): Message doesn't exist in that chat.
    """
    now = now or datetime.now(UTC)
    chat = get_live_chat_or_404(db, owner_id, chat_id)

    store = MessageStore(db)
    message = store.find_by_key(owner_id=owner_id, chat_id=chat_id, id=message_id)
    if message is None:
        raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")

    changes = request.model_dump(exclude_unset=True)
    # NOT NULL columns; an explicit null leaves them untouched
    for field in ("content", "is_thinking", "is_generating_image"):
        if field in changes and changes[field] is None:
            del changes[field]

    with transaction(db):
        store.overwrite(message, changes)
        ChatStore(db).touch(chat, now)

    return message_to_out(message)


def delete_message(db: Session, owner_id: str, chat_id: int, message_id: int) -> None:
    """Hard-delete one message.

    Raises:
        NotFoundError(E_MESSAGE_NOT_FOUND): Message doesn't exist in that chat.
    """
    with transaction(db):
        deleted = MessageStore(db).hard_delete(owner_id, chat_id, message_id)
        if not deleted:
            raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")

    logger.info("message_deleted", chat_id=chat_id, message_id=message_id)
