"""Memory service layer.

Memories are short owner-level notes. They are hard-deleted and have no quota.
"""

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from chatsync.db.models import Memory
from chatsync.db.session import transaction
from chatsync.db.stores import MemoryStore
from chatsync.errors import ApiErrorCode, NotFoundError
from chatsync.logging import get_logger
from chatsync.schemas.memory import MemoryCreateRequest, MemoryOut, MemoryUpdateRequest
from chatsync.services.ids import IdScope, create_with_next_id

logger = get_logger(__name__)


def memory_to_out(memory: Memory) -> MemoryOut:
    """Convert Memory ORM model to MemoryOut schema."""
    return MemoryOut(
        id=memory.id,
        content=memory.content,
        created_at=memory.created_at,
        updated_at=memory.updated_at,
    )


def list_memories(db: Session, owner_id: str) -> list[MemoryOut]:
    """All memories of the owner, newest created first."""
    return [memory_to_out(m) for m in MemoryStore(db).list_all(owner_id)]


def create_memory(
    db: Session,
    owner_id: str,
    request: MemoryCreateRequest,
    now: datetime | None = None,
) -> MemoryOut:
    now = now or datetime.now(UTC)

    with transaction(db):
        memory = create_with_next_id(
            db,
            IdScope.for_memory(owner_id),
            lambda memory_id: Memory(
                owner_id=owner_id,
                id=memory_id,
                content=request.content,
                created_at=request.created_at or now,
                updated_at=request.updated_at or now,
            ),
        )

    logger.info("memory_created", memory_id=memory.id)
    return memory_to_out(memory)


def update_memory(
    db: Session,
    owner_id: str,
    memory_id: int,
    request: MemoryUpdateRequest,
    now: datetime | None = None,
) -> MemoryOut:
    """Replace a memory's content and stamp updated_at with the server time.

    Raises:
        NotFoundError(E_MEMORY_NOT_FOUND): Memory doesn't exist.
    """
    now = now or datetime.now(UTC)
    store = MemoryStore(db)
    memory = store.find_by_key(owner_id=owner_id, id=memory_id)
    if memory is None:
        raise NotFoundError(ApiErrorCode.E_MEMORY_NOT_FOUND, "Memory not found")

    with transaction(db):
        store.overwrite(memory, {"content": request.content, "updated_at": now})

    return memory_to_out(memory)


def delete_memory(db: Session, owner_id: str, memory_id: int) -> None:
    """Hard-delete a memory.

    Raises:
        NotFoundError(E_MEMORY_NOT_FOUND): Memory doesn't exist.
    """
    with transaction(db):
        if not MemoryStore(db).hard_delete(owner_id, memory_id):
            raise NotFoundError(ApiErrorCode.E_MEMORY_NOT_FOUND, "Memory not found")

    logger.info("memory_deleted", memory_id=memory_id)
