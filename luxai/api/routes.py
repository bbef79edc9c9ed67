"""API router aggregating all endpoint modules under settings.API_PREFIX."""

from fastapi import APIRouter

from luxai.api.endpoints import auth, conversations, guest, notes

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(conversations.router, prefix="/conversations", tags=["conversations"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(guest.router, prefix="/guest", tags=["guest"])
