"""
SQLAlchemy models for chat persistence.

Conversations are owned by a single identity-provider user. Messages form an
append-only log per conversation, read back in creation order.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models with async support."""

    pass


class Conversation(Base):
    """
    A chat thread belonging to one user.

    Attributes:
        id: Autoincrement primary key (opaque to clients)
        user_id: Identity-provider user ID of the owner
        title: Mutable display title
        created_at: Timestamp when the conversation was created
        updated_at: Bumped on every new message and on rename
    """

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, owner={self.user_id}, title={self.title!r})>"


class Message(Base):
    """
    One immutable turn of a conversation.

    Attributes:
        id: Autoincrement primary key, also the tie-breaker for ordering
        conversation_id: Parent conversation (rows go with it on delete)
        role: "user" or "assistant"
        content: Message text
        created_at: Creation timestamp, primary ordering key
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation={self.conversation_id}, role={self.role})>"
