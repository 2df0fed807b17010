"""Chat API routes.

Direct chat CRUD for online clients. Ids are assigned by the server.
Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chatsync.api.deps import Viewer, get_db, get_viewer
from chatsync.responses import success_response
from chatsync.schemas.chat import ChatCreateRequest, ChatUpdateRequest
from chatsync.services import chats as chats_service

router = APIRouter(tags=["chats"])


@router.get("/chats")
def list_chats(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(default=100, ge=1, le=500, description="Maximum results (1-500)"),
    offset: int = Query(default=0, ge=0),
) -> dict:
    """List live chats, most recently updated first."""
    chats = chats_service.list_chats(db, viewer.owner_id, limit=limit, offset=offset)
    return success_response(chats=[c.to_wire() for c in chats], count=len(chats))


@router.get("/chats/{chat_id}")
def get_chat(
    chat_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get one live chat.

    Errors:
        E_CHAT_NOT_FOUND (404): Chat doesn't exist or was deleted.
    """
    chat = chats_service.get_chat(db, viewer.owner_id, chat_id)
    return success_response(chat=chat.to_wire())


@router.post("/chats", status_code=201)
def create_chat(
    body: ChatCreateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a chat with the next free id.

    Errors:
        E_CHAT_LIMIT_EXCEEDED (400): Owner already has the maximum number of live chats.
        E_ID_CONFLICT (409): Id allocation kept colliding with concurrent writers.
    """
    chat = chats_service.create_chat(db, viewer.owner_id, body)
    return success_response(chat=chat.to_wire())


@router.put("/chats/{chat_id}")
def update_chat(
    chat_id: int,
    body: ChatUpdateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    chat = chats_service.update_chat(db, viewer.owner_id, chat_id, body)
    return success_response(chat=chat.to_wire())


@router.delete("/chats/{chat_id}")
def delete_chat(
    chat_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Tombstone the chat and permanently delete its messages."""
    chats_service.delete_chat(db, viewer.owner_id, chat_id)
    return success_response(message="Chat deleted successfully")


@router.delete("/chats")
def delete_all_chats(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Tombstone every chat of the owner and permanently delete all messages."""
    deleted = chats_service.delete_all_chats(db, viewer.owner_id)
    return success_response(message="All chats deleted successfully", count=deleted)
