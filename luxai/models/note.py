"""SQLAlchemy model for study notes."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from luxai.models.conversation import Base


class Note(Base):
    """
    A free-standing study note owned by one user.

    Attributes:
        id: Autoincrement primary key
        user_id: Identity-provider user ID of the owner
        title: Note title (required)
        content: Note body (may be empty)
        subject: Optional subject label
        tags: Optional free-text tags
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "notes"

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
    content: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    subject: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    tags: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
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
        return f"<Note(id={self.id}, owner={self.user_id}, title={self.title!r})>"
