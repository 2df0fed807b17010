"""Message API routes, nested under a chat.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chatsync.api.deps import Viewer, get_db, get_viewer
from chatsync.responses import success_response
from chatsync.schemas.chat import MessageCreateRequest, MessageUpdateRequest
from chatsync.services import messages as messages_service

router = APIRouter(tags=["messages"])


@router.get("/chats/{chat_id}/messages")
def list_messages(
    chat_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(default=200, ge=1, le=200, description="Maximum results (1-200)"),
    offset: int = Query(default=0, ge=0, description="Messages to skip, counted from the newest"),
) -> dict:
    """List a page of messages, oldest first within the page.

    Errors:
        E_CHAT_NOT_FOUND (404): Chat doesn't exist or was deleted.
    """
    messages = messages_service.list_messages(
        db, viewer.owner_id, chat_id, limit=limit, offset=offset
    )
    return success_response(messages=[m.to_wire() for m in messages], count=len(messages))


@router.post("/chats/{chat_id}/messages", status_code=201)
def create_message(
    chat_id: int,
    body: MessageCreateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Append a message to a live chat and bump the chat's updatedAt.

    Errors:
        E_CHAT_NOT_FOUND (404): Chat doesn't exist or was deleted.
        E_ID_CONFLICT (409): Id allocation kept colliding with concurrent writers.
    """
    message = messages_service.create_message(db, viewer.owner_id, chat_id, body)
    return success_response(message=message.to_wire())


@router.put("/chats/{chat_id}/messages/{message_id}")
def update_message(
    chat_id: int,
    message_id: int,
    body: MessageUpdateRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update only the fields present in the body."""
    message = messages_service.update_message(db, viewer.owner_id, chat_id, message_id, body)
    return success_response(message=message.to_wire())


@router.delete("/chats/{chat_id}/messages/{message_id}")
def delete_message(
    chat_id: int,
    message_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    messages_service.delete_message(db, viewer.owner_id, chat_id, message_id)
    return success_response(message="Message deleted successfully")
