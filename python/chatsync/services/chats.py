"""Chat service layer.

Direct (non-sync) chat operations. Service functions correspond 1:1 with
route handlers; routes are transport-only and call exactly one of them.

All operations:
- Scope every query by owner_id
- Treat tombstoned chats as not found
- Run new chats through the quota guard and the id allocator
"""

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from chatsync.db.models import Chat
from chatsync.db.session import transaction
from chatsync.db.stores import ChatStore, MessageStore
from chatsync.errors import ApiErrorCode, NotFoundError
from chatsync.logging import get_logger
from chatsync.schemas.chat import ChatCreateRequest, ChatOut, ChatUpdateRequest
from chatsync.services import quota
from chatsync.services.ids import IdScope, create_with_next_id

logger = get_logger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def chat_to_out(chat: Chat) -> ChatOut:
    """Convert Chat ORM model to ChatOut schema."""
    return ChatOut(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


def get_live_chat_or_404(db: Session, owner_id: str, chat_id: int) -> Chat:
    """Load a live chat owned by owner_id.

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist, belongs to someone
            else, or is tombstoned.
    """
    chat = ChatStore(db).find_live(owner_id, chat_id)
    if chat is None:
        raise NotFoundError(ApiErrorCode.E_CHAT_NOT_FOUND, "Chat not found")
    return chat


def list_chats(
    db: Session, owner_id: str, limit: int = DEFAULT_LIMIT, offset: int = 0
) -> list[ChatOut]:
    """List live chats, most recently updated first."""
    chats = ChatStore(db).list_live(owner_id, limit=min(limit, MAX_LIMIT), offset=offset)
    return [chat_to_out(c) for c in chats]


def get_chat(db: Session, owner_id: str, chat_id: int) -> ChatOut:
    return chat_to_out(get_live_chat_or_404(db, owner_id, chat_id))


def create_chat(
    db: Session,
    owner_id: str,
    request: ChatCreateRequest,
    now: datetime | None = None,
) -> ChatOut:
    """Create a chat with a server-allocated id.

    Args:
        db: Database session.
        owner_id: The owner creating the chat.
        request: Title and optional client timestamps.
        now: Server time override.

    Returns:
        The created chat.

    Raises:
        QuotaExceededError(E_CHAT_LIMIT_EXCEEDED): Owner is at the live-chat ceiling.
        ConflictError(E_ID_CONFLICT): Id allocation kept colliding.
    """
    now = now or datetime.now(UTC)

    quota.check_and_reserve(db, owner_id)

    with transaction(db):
        chat = create_with_next_id(
            db,
            IdScope.for_chat(owner_id),
            lambda chat_id: Chat(
                owner_id=owner_id,
                id=chat_id,
                title=request.title,
                created_at=request.created_at or now,
                updated_at=request.updated_at or now,
            ),
        )

    logger.info("chat_created", chat_id=chat.id)
    return chat_to_out(chat)


def update_chat(
    db: Session,
    owner_id: str,
    chat_id: int,
    request: ChatUpdateRequest,
    now: datetime | None = None,
) -> ChatOut:
    """Rename a live chat and stamp updated_at with server time (never backwards).

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist or is tombstoned.
    """
    now = now or datetime.now(UTC)
    chat = get_live_chat_or_404(db, owner_id, chat_id)

    values: dict = {"updated_at": now}
    if request.title is not None:
        values["title"] = request.title

    with transaction(db):
        ChatStore(db).overwrite(chat, values)

    return chat_to_out(chat)


def delete_chat(db: Session, owner_id: str, chat_id: int, now: datetime | None = None) -> None:
    """Tombstone a chat and hard-delete all of its messages.

    The chat row keeps its id so the allocator never hands it out again;
    the messages are physically removed.

    Raises:
        NotFoundError(E_CHAT_NOT_FOUND): Chat doesn't exist or is already tombstoned.
    """
    now = now or datetime.now(UTC)
    chat = get_live_chat_or_404(db, owner_id, chat_id)

    with transaction(db):
        ChatStore(db).soft_delete(chat, now)
        removed = MessageStore(db).hard_delete_for_chat(owner_id, chat_id)

    logger.info("chat_deleted", chat_id=chat_id, messages_deleted=removed)


def delete_all_chats(db: Session, owner_id: str, now: datetime | None = None) -> int:
    """Tombstone every live chat of the owner and hard-delete all their messages.

    Returns:
        Number of chats tombstoned.
    """
    now = now or datetime.now(UTC)

    with transaction(db):
        tombstoned = ChatStore(db).soft_delete_all(owner_id, now)
        removed = MessageStore(db).hard_delete_for_owner(owner_id)

    logger.info("all_chats_deleted", chats_deleted=tombstoned, messages_deleted=removed)
    return tombstoned
