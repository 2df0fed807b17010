"""Current owner endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from chatsync.auth.middleware import Viewer, get_viewer
from chatsync.responses import success_response

router = APIRouter()


@router.get("/me")
async def get_me(viewer: Annotated[Viewer, Depends(get_viewer)]) -> dict:
    """Return the authenticated owner id (the token's sub claim)."""
    return success_response(ownerId=viewer.owner_id)
