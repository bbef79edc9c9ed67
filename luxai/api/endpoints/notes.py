"""
Study note endpoints.

All routes are scoped to the caller; ids of other users' notes answer 404.
"""

from fastapi import APIRouter, Depends

from luxai.api.deps import owned_note
from luxai.core.security import UserContext, get_current_user
from luxai.models import Note
from luxai.schemas.chat import SuccessResponse
from luxai.schemas.notes import NoteCreate, NoteOut, NoteUpdate
from luxai.services.database import database

router = APIRouter()


@router.get("", response_model=list[NoteOut])
async def list_notes(user_ctx: UserContext = Depends(get_current_user)) -> list[Note]:
    return await database.list_notes(user_ctx.user_id)


@router.post("", response_model=NoteOut)
async def create_note(
    request: NoteCreate,
    user_ctx: UserContext = Depends(get_current_user),
) -> Note:
    """
    Create a note.

    **Request Body:**
    ```json
    {"title": "Limits", "content": "...", "subject": "Calculus", "tags": "exam, week-3"}
    ```
    """
    return await database.create_note(
        user_ctx.user_id,
        title=request.title,
        content=request.content,
        subject=request.subject,
        tags=request.tags,
    )


@router.get("/{note_id}", response_model=NoteOut)
async def get_note(note_id: int, note: Note = Depends(owned_note)) -> Note:
    return note


@router.put("/{note_id}", response_model=NoteOut)
async def update_note(
    request: NoteUpdate,
    note_id: int,
    user_ctx: UserContext = Depends(get_current_user),
) -> Note:
    """
    Partially update a note.

    Only the fields present in the body change, e.g. `{"tags": "revision"}`
    leaves title, content and subject as they were. The body is validated
    before the note is looked up.
    """
    note = await owned_note.fetch(note_id, user_ctx)
    updated = await database.update_note(note.id, user_ctx.user_id, request.changes())
    if not updated:
        raise owned_note.not_found()
    return updated


@router.delete("/{note_id}", response_model=SuccessResponse)
async def delete_note(
    note_id: int,
    note: Note = Depends(owned_note),
    user_ctx: UserContext = Depends(get_current_user),
) -> SuccessResponse:
    deleted = await database.delete_note(note.id, user_ctx.user_id)
    if not deleted:
        raise owned_note.not_found()
    return SuccessResponse()
