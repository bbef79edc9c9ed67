"""Database models for conversations, messages and notes."""

from luxai.models.conversation import ROLE_ASSISTANT, ROLE_USER, Base, Conversation, Message
from luxai.models.note import Note

__all__ = ["ROLE_ASSISTANT", "ROLE_USER", "Base", "Conversation", "Message", "Note"]
