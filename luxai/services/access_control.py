"""
Ownership guard for user-owned resources.

Every conversation and note belongs to exactly one identity-provider user.
Before any route reads or mutates such a row it resolves the row through
`OwnershipGuard`, which answers 404 for rows that are missing or owned by
someone else so other users' ids are never confirmed to exist.
"""

from typing import Generic

from fastapi import Depends, HTTPException, Request, status

from luxai.core.security import UserContext, get_current_user
from luxai.services.database import ModelT, database

# Primary keys are signed 64-bit on every supported backend
MAX_RECORD_ID = 2**63 - 1


class OwnershipGuard(Generic[ModelT]):
    """
    FastAPI dependency resolving a path id to a row owned by the caller.

    Args:
        model: SQLAlchemy model with `id` and `user_id` columns.
        label: Human name used in the 404 detail ("Conversation", "Note").
        path_param: Name of the path parameter holding the row id.

    Usage:
        owned_note = OwnershipGuard(Note, "Note", "note_id")

        @router.get("/{note_id}")
        async def read(note_id: int, note: Note = Depends(owned_note)): ...

    Routes that take a request body call `fetch` from the handler instead, so
    body validation errors are reported before the database is queried.
    """

    def __init__(self, model: type[ModelT], label: str, path_param: str):
        self.model = model
        self.label = label
        self.path_param = path_param

    def not_found(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{self.label} not found",
        )

    async def fetch(self, record_id: int, user_ctx: UserContext) -> ModelT:
        """Load the row for this owner or raise 404."""
        if not 1 <= record_id <= MAX_RECORD_ID:
            raise self.not_found()

        record = await database.get_owned(self.model, record_id, user_ctx.user_id)
        if record is None:
            raise self.not_found()
        return record

    async def __call__(
        self,
        request: Request,
        user_ctx: UserContext = Depends(get_current_user),
    ) -> ModelT:
        raw_id = request.path_params.get(self.path_param)
        try:
            record_id = int(raw_id)
        except (TypeError, ValueError):
            raise self.not_found() from None
        return await self.fetch(record_id, user_ctx)
