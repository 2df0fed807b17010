"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from chatsync.api.routes.chats import router as chats_router
from chatsync.api.routes.health import router as health_router
from chatsync.api.routes.me import router as me_router
from chatsync.api.routes.memories import router as memories_router
from chatsync.api.routes.messages import router as messages_router
from chatsync.api.routes.sync import router as sync_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["owner"])
    api_router.include_router(sync_router)
    api_router.include_router(chats_router)
    api_router.include_router(messages_router)
    api_router.include_router(memories_router)
    return api_router


__all__ = ["create_api_router"]
