"""Pydantic schemas for study notes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from luxai.core.config import settings


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=settings.MAX_TITLE_LENGTH)
    content: str = Field(..., max_length=settings.MAX_NOTE_LENGTH)
    subject: str | None = Field(None, max_length=255)
    tags: str | None = Field(None, max_length=1000)


class NoteUpdate(BaseModel):
    """
    Partial note update.

    Only fields present in the request body are written. Sending an empty
    string for `subject` or `tags` clears it; `title` and `content` cannot
    be cleared.
    """

    title: str | None = Field(None, min_length=1, max_length=settings.MAX_TITLE_LENGTH)
    content: str | None = Field(None, max_length=settings.MAX_NOTE_LENGTH)
    subject: str | None = Field(None, max_length=255)
    tags: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> NoteUpdate:
        for name in ("title", "content"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, str | None]:
        """Fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    content: str
    subject: str | None = None
    tags: str | None = None
    created_at: datetime
    updated_at: datetime
