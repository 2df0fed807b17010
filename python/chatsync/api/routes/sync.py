"""Sync API routes.

GET /sync pulls everything changed since a watermark; POST /sync pushes
client-authored batches. Routes are transport-only: each calls exactly one
service function.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chatsync.api.deps import Viewer, get_db, get_viewer
from chatsync.responses import success_response
from chatsync.schemas.sync import PushRequest
from chatsync.services import sync as sync_service

router = APIRouter(tags=["sync"])


@router.get("/sync")
def pull(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    since: str | None = Query(default=None, description="ISO-8601 watermark from a previous pull"),
) -> dict:
    """Pull live chats, messages and memories newer than `since`.

    Without `since` the response holds every live chat and memory and no
    messages. Store the returned syncedAt and send it as `since` next time.

    Errors:
        E_INVALID_WATERMARK (400): `since` is not an ISO-8601 timestamp.
    """
    watermark = sync_service.parse_watermark(since)
    result = sync_service.pull(db, viewer.owner_id, watermark)
    return success_response(**result.to_wire())


@router.post("/sync")
def push(
    body: PushRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Push chats, messages and memories created or edited offline.

    Items carry client-chosen ids and are applied with last-writer-wins.
    Failing items are listed per batch; the rest are still applied.

    Errors:
        E_BATCH_TOO_LARGE (400): A batch exceeds PUSH_MAX_BATCH_ITEMS.
    """
    results = sync_service.push(db, viewer.owner_id, body)
    return success_response(results=results.to_wire())
