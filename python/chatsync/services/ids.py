"""Identifier allocation for new chats, messages and memories.

Ids are small sequential integers scoped per owner (chats, memories) or per
(owner, chat) (messages), so clients can mint them offline and the server can
hand out the next one for direct creates.

Two strategies, selected by ID_ALLOCATION_STRATEGY:

- max_plus_one: read the highest existing id in scope and add one. Not a
  reservation; two concurrent creators can compute the same value.
- counter: lock a per-scope row in id_counters (FOR UPDATE) and advance it.
  The counter never hands out less than max(existing) + 1, since sync pushes
  may have claimed client-chosen ids the counter never saw.

Either way the value is a hint. create_with_next_id() inserts inside a
savepoint and re-allocates on a uniqueness violation, raising ConflictError
once the attempts are used up.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatsync.config import IdAllocationStrategy, get_settings
from chatsync.db.models import Base, Chat, EntityKind, IdCounter, Memory, Message
from chatsync.errors import ApiErrorCode, ConflictError
from chatsync.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# chat_id stored in id_counters for owner-scoped kinds
OWNER_SCOPE_CHAT_ID = 0


@dataclass(frozen=True)
class IdScope:
    """The key space an id must be unique within."""

    kind: EntityKind
    owner_id: str
    chat_id: int | None = None

    @classmethod
    def for_chat(cls, owner_id: str) -> "IdScope":
        return cls(EntityKind.chat, owner_id)

    @classmethod
    def for_memory(cls, owner_id: str) -> "IdScope":
        return cls(EntityKind.memory, owner_id)

    @classmethod
    def for_message(cls, owner_id: str, chat_id: int) -> "IdScope":
        return cls(EntityKind.message, owner_id, chat_id)

    def __post_init__(self):
        if (self.kind == EntityKind.message) != (self.chat_id is not None):
            raise ValueError(f"chat_id is required for message scopes only (got {self})")


def max_id_in_scope(db: Session, scope: IdScope) -> int:
    """Return the highest id in scope, or 0 if the scope is empty.

    Tombstoned chats count: their ids are never reused.
    """
    if scope.kind == EntityKind.chat:
        stmt = select(func.max(Chat.id)).where(Chat.owner_id == scope.owner_id)
    elif scope.kind == EntityKind.memory:
        stmt = select(func.max(Memory.id)).where(Memory.owner_id == scope.owner_id)
    else:
        stmt = select(func.max(Message.id)).where(
            Message.owner_id == scope.owner_id,
            Message.chat_id == scope.chat_id,
        )
    return db.scalar(stmt) or 0


def next_id_max_plus_one(db: Session, scope: IdScope) -> int:
    """Read-then-compute allocation: max(existing) + 1, or 1 for an empty scope."""
    return max_id_in_scope(db, scope) + 1


def next_id_from_counter(db: Session, scope: IdScope) -> int:
    """Advance the scope's counter row under a row lock and return the claimed id.

    Must be called within an existing transaction context; the lock is held
    until the caller commits.
    """
    counter_key = {
        "owner_id": scope.owner_id,
        "kind": scope.kind.value,
        "chat_id": scope.chat_id if scope.chat_id is not None else OWNER_SCOPE_CHAT_ID,
    }
    floor = max_id_in_scope(db, scope) + 1

    counter = db.scalar(select(IdCounter).filter_by(**counter_key).with_for_update())
    if counter is None:
        try:
            with db.begin_nested():
                db.add(IdCounter(**counter_key, next_id=floor + 1))
            return floor
        except IntegrityError:
            # Another request created the counter row first
            counter = db.scalar(select(IdCounter).filter_by(**counter_key).with_for_update())
            if counter is None:
                raise

    current = max(counter.next_id, floor)
    counter.next_id = current + 1
    db.flush()

    logger.debug("assigned_counter_id", kind=scope.kind.value, chat_id=scope.chat_id, id=current)
    return current


def next_id(db: Session, scope: IdScope) -> int:
    """Return an id hint for a new entity in scope using the configured strategy."""
    strategy = get_settings().id_allocation_strategy
    if strategy == IdAllocationStrategy.COUNTER:
        return next_id_from_counter(db, scope)
    return next_id_max_plus_one(db, scope)


def create_with_next_id(
    db: Session,
    scope: IdScope,
    build: Callable[[int], ModelT],
    max_attempts: int | None = None,
) -> ModelT:
    """Allocate an id, build the entity and insert it, retrying on collisions.

    Does NOT commit; the caller owns the transaction.

    Args:
        db: Database session.
        scope: Scope the new id must be unique within.
        build: Callable taking the allocated id and returning an unsaved entity.
        max_attempts: Insert attempts (defaults to ID_ALLOCATION_MAX_ATTEMPTS).

    Returns:
        The flushed entity.

    Raises:
        ConflictError(E_ID_CONFLICT): Every attempt hit an existing id.
    """
    if max_attempts is None:
        max_attempts = get_settings().id_allocation_max_attempts

    for attempt in range(1, max_attempts + 1):
        candidate = next_id(db, scope)
        entity = build(candidate)
        try:
            with db.begin_nested():
                db.add(entity)
                db.flush()
        except IntegrityError:
            logger.warning(
                "id_allocation_collision",
                kind=scope.kind.value,
                chat_id=scope.chat_id,
                candidate_id=candidate,
                attempt=attempt,
            )
            continue
        return entity

    raise ConflictError(
        ApiErrorCode.E_ID_CONFLICT,
        f"Could not allocate a unique {scope.kind.value} id after {max_attempts} attempts",
    )
