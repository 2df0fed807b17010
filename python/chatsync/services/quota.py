"""Live-chat ceiling for the direct-create path.

Only POST /chats goes through this guard. Sync pushes never do: a device must
always be able to upload chats it created offline, even if that takes the
owner past the ceiling.

The check counts rows; it does not reserve a slot. Two concurrent creates at
ceiling - 1 can both pass.
"""

from sqlalchemy.orm import Session

from chatsync.config import get_settings
from chatsync.db.stores import ChatStore
from chatsync.errors import ApiErrorCode, QuotaExceededError
from chatsync.logging import get_logger

logger = get_logger(__name__)


def check_and_reserve(db: Session, owner_id: str, limit: int | None = None) -> None:
    """Raise QuotaExceededError if owner_id already has `limit` live chats.

    Args:
        db: Database session.
        owner_id: Owner about to create a chat.
        limit: Ceiling override (defaults to MAX_CHATS_PER_OWNER).

    Raises:
        QuotaExceededError(E_CHAT_LIMIT_EXCEEDED): At or above the ceiling.
    """
    if limit is None:
        limit = get_settings().max_chats_per_owner

    live = ChatStore(db).count_live(owner_id)
    if live >= limit:
        logger.info("chat_quota_exceeded", live_chats=live, limit=limit)
        raise QuotaExceededError(
            ApiErrorCode.E_CHAT_LIMIT_EXCEEDED,
            f"Maximum {limit} chats per user",
        )
