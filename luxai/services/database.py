"""
Async database service for conversations, messages and notes.

Every store operation opens its own short-lived session, so callers that
outlive a request (the streaming relay) never hold a session across awaits on
the upstream API. There is no transaction spanning several operations.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from luxai.core.config import settings
from luxai.models import Base, Conversation, Message, Note

logger = logging.getLogger("luxai.database")

ModelT = TypeVar("ModelT", Conversation, Note)

NOTE_FIELDS = ("title", "content", "subject", "tags")


class StoreError(Exception):
    """A database operation failed."""


class StoreUnavailableError(StoreError):
    """The database is not configured or not connected."""


def _engine_options(url: str) -> dict[str, Any]:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database in (None, "", ":memory:"):
            # One shared connection, otherwise every session sees an empty database
            return {"poolclass": StaticPool}
        return {}
    return {"pool_size": 5, "max_overflow": 10}


class Database:
    """
    Async database service.

    Features:
    - Async connection pooling (SQLite for development, PostgreSQL in production)
    - Automatic table creation
    - Ownership-scoped CRUD for conversations and notes
    - Append-only message log per conversation
    """

    def __init__(self):
        self.engine = None
        self.session_factory = None
        self._connected = False

    @property
    def is_available(self) -> bool:
        """Check if database is configured and connected."""
        return self._connected and self.engine is not None

    async def connect(self, url: str | None = None) -> bool:
        """
        Create the engine and tables.

        Args:
            url: Database URL, defaults to settings.DATABASE_URL.

        Returns:
            True if connection successful, False otherwise.
        """
        url = url or settings.DATABASE_URL
        if not url:
            logger.warning("DATABASE_URL not configured - persistence disabled")
            return False

        try:
            self.engine = create_async_engine(url, echo=settings.DATABASE_ECHO, **_engine_options(url))
            self.session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._connected = True
            logger.info("Connected to database: %s", settings.sanitize_url(url))
            return True
        except Exception as e:
            logger.error("Failed to connect to database: %s", e)
            self.engine = None
            self.session_factory = None
            self._connected = False
            return False

    async def close(self) -> None:
        """Close database connection pool."""
        if self.engine:
            await self.engine.dispose()
            self._connected = False
            self.engine = None
            self.session_factory = None
            logger.info("Database connection closed")

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session, translating driver errors into StoreError."""
        if not self.is_available or not self.session_factory:
            raise StoreUnavailableError("Database not connected")

        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Database %s error: %s", action, e)
            raise StoreError(f"Database {action} failed") from e

    # =========================================================================
    # Ownership lookups
    # =========================================================================

    async def get_owned(self, model: type[ModelT], record_id: int, user_id: str) -> ModelT | None:
        """
        Load a row of `model` only if it belongs to `user_id`.

        Returns:
            The row, or None when it does not exist or has another owner.
        """
        async with self._session(f"get {model.__tablename__}") as session:
            result = await session.execute(select(model).where(model.id == record_id, model.user_id == user_id))
            return result.scalar_one_or_none()

    # =========================================================================
    # Conversations
    # =========================================================================

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Caller's conversations, most recently active first."""
        async with self._session("list conversations") as session:
            result = await session.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            )
            return list(result.scalars().all())

    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        async with self._session("create conversation") as session:
            conversation = Conversation(user_id=user_id, title=title)
            session.add(conversation)
            await session.commit()
            await session.refresh(conversation)
            return conversation

    async def update_conversation(
        self,
        conversation_id: int,
        user_id: str,
        title: str | None = None,
    ) -> Conversation | None:
        """
        Partially update a conversation.

        Returns:
            The updated row, or None if not found for this owner.
        """
        async with self._session("update conversation") as session:
            result = await session.execute(
                select(Conversation).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
            )
            conversation = result.scalar_one_or_none()
            if not conversation:
                return None

            if title is not None:
                conversation.title = title
            conversation.updated_at = datetime.now(UTC)

            await session.commit()
            await session.refresh(conversation)
            return conversation

    async def delete_conversation(self, conversation_id: int, user_id: str) -> bool:
        """
        Delete a conversation and all of its messages in one transaction.

        Messages go first so no orphan rows survive on backends without
        enforced foreign keys.

        Returns:
            True if deleted, False if not found for this owner.
        """
        async with self._session("delete conversation") as session:
            result = await session.execute(
                select(Conversation.id).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
            )
            if result.scalar_one_or_none() is None:
                return False

            await session.execute(delete(Message).where(Message.conversation_id == conversation_id))
            await session.execute(
                delete(Conversation).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
            )
            await session.commit()
            return True

    # =========================================================================
    # Messages
    # =========================================================================

    async def list_messages(self, conversation_id: int) -> list[Message]:
        """
        Messages of a conversation in chronological order.

        Callers must have verified ownership of the conversation.
        """
        async with self._session("list messages") as session:
            result = await session.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            return list(result.scalars().all())

    async def add_message(self, conversation_id: int, role: str, content: str) -> Message:
        """
        Append a message and bump the conversation's updated_at.

        Callers must have verified ownership of the conversation.
        """
        now = datetime.now(UTC)
        async with self._session("add message") as session:
            message = Message(conversation_id=conversation_id, role=role, content=content, created_at=now)
            session.add(message)
            await session.execute(update(Conversation).where(Conversation.id == conversation_id).values(updated_at=now))
            await session.commit()
            await session.refresh(message)
            return message

    # =========================================================================
    # Notes
    # =========================================================================

    async def list_notes(self, user_id: str) -> list[Note]:
        """Caller's notes, most recently updated first."""
        async with self._session("list notes") as session:
            result = await session.execute(
                select(Note).where(Note.user_id == user_id).order_by(Note.updated_at.desc(), Note.id.desc())
            )
            return list(result.scalars().all())

    async def create_note(
        self,
        user_id: str,
        title: str,
        content: str,
        subject: str | None = None,
        tags: str | None = None,
    ) -> Note:
        async with self._session("create note") as session:
            note = Note(
                user_id=user_id,
                title=title,
                content=content,
                subject=subject or None,
                tags=tags or None,
            )
            session.add(note)
            await session.commit()
            await session.refresh(note)
            return note

    async def update_note(self, note_id: int, user_id: str, changes: dict[str, Any]) -> Note | None:
        """
        Partially update a note.

        Only keys present in `changes` are written; empty subject/tags clear
        the stored value.

        Returns:
            The updated row, or None if not found for this owner.
        """
        async with self._session("update note") as session:
            result = await session.execute(select(Note).where(Note.id == note_id, Note.user_id == user_id))
            note = result.scalar_one_or_none()
            if not note:
                return None

            for name in NOTE_FIELDS:
                if name not in changes:
                    continue
                value = changes[name]
                if name in ("subject", "tags"):
                    value = value or None
                setattr(note, name, value)
            note.updated_at = datetime.now(UTC)

            await session.commit()
            await session.refresh(note)
            return note

    async def delete_note(self, note_id: int, user_id: str) -> bool:
        """
        Delete a note.

        Returns:
            True if deleted, False if not found for this owner.
        """
        async with self._session("delete note") as session:
            result = await session.execute(delete(Note).where(Note.id == note_id, Note.user_id == user_id))
            await session.commit()
            return result.rowcount > 0


# Global instance
database = Database()
