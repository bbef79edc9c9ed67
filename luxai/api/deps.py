"""Shared FastAPI dependencies."""

from openai import AsyncOpenAI

from luxai.core.config import settings
from luxai.models import Conversation, Note
from luxai.services.access_control import OwnershipGuard

owned_conversation = OwnershipGuard(Conversation, "Conversation", "conversation_id")
owned_note = OwnershipGuard(Note, "Note", "note_id")


def get_openai_client() -> AsyncOpenAI | None:
    """Dependency to get configured OpenAI client."""
    if not settings.OPENAI_API_KEY:
        return None
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
    )
