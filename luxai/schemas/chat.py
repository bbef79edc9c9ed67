"""
Pydantic schemas for conversation and chat requests and responses.

Text inputs are bounded by the limits in settings to keep single requests
from exhausting memory or the upstream context window.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from luxai.core.config import settings


class ConversationCreate(BaseModel):
    """Request to start a conversation."""

    title: str = Field(..., min_length=1, max_length=settings.MAX_TITLE_LENGTH)


class ConversationUpdate(BaseModel):
    """
    Partial conversation update.

    Omitted fields keep their stored value.
    """

    title: str | None = Field(None, min_length=1, max_length=settings.MAX_TITLE_LENGTH)


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    """A new user turn for an existing conversation."""

    content: str = Field(..., min_length=1, max_length=settings.MAX_MESSAGE_LENGTH)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    role: str
    content: str
    created_at: datetime


class GuestChatRequest(BaseModel):
    """Single-turn guest message; nothing is stored."""

    message: str = Field(..., min_length=1, max_length=settings.MAX_MESSAGE_LENGTH)


class SuccessResponse(BaseModel):
    success: bool = True
