"""Memory API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chatsync.api.deps import Viewer, get_db, get_viewer
from chatsync.responses import success_response
from chatsync.schemas.memory import MemoryCreateRequest, MemoryUpdateRequest
from chatsync.services import memories as memories_service

router = APIRouter(tags=["memories"])


@router.get("/memories")
def list_memories(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List all memories, newest created first."""
    memories = memories_service.list_memories(db, viewer.owner_id)
    return success_response(memories=[m.to_wire() for m in memories], count=len(memories))


@router.post("/memories", status_code=201)
def create_memory(
    body: MemoryCreateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    memory = memories_service.create_memory(db, viewer.owner_id, body)
    return success_response(memory=memory.to_wire())


@router.put("/memories/{memory_id}")
def update_memory(
    memory_id: int,
    body: MemoryUpdateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Replace the content. updatedAt is set to the server time.

    Errors:
        E_MEMORY_NOT_FOUND (404): Memory doesn't exist.
    """
    memory = memories_service.update_memory(db, viewer.owner_id, memory_id, body)
    return success_response(memory=memory.to_wire())


@router.delete("/memories/{memory_id}")
def delete_memory(
    memory_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    memories_service.delete_memory(db, viewer.owner_id, memory_id)
    return success_response(message="Memory deleted successfully")
