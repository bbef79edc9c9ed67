"""
Conversation endpoints.

CRUD over the caller's conversations plus the streaming message relay.
Every route that takes a conversation id resolves it through the ownership
guard first, so other users' conversations answer 404. Routes with a request
body call the guard from the handler, after the body has been validated.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from openai import AsyncOpenAI

from luxai.api.deps import get_openai_client, owned_conversation
from luxai.core.security import UserContext, get_current_user
from luxai.models import Conversation
from luxai.schemas.chat import (
    ConversationCreate,
    ConversationOut,
    ConversationUpdate,
    MessageCreate,
    MessageOut,
    SuccessResponse,
)
from luxai.services.chat_relay import ChatRelay, UpstreamUnavailableError
from luxai.services.database import database
from luxai.services.events import SSE_HEADERS
from luxai.services.quota import conversation_quota

router = APIRouter()


@router.get("", response_model=list[ConversationOut])
async def list_conversations(
    user_ctx: UserContext = Depends(get_current_user),
) -> list[Conversation]:
    """List the caller's conversations, most recently active first."""
    return await database.list_conversations(user_ctx.user_id)


@router.post("", response_model=ConversationOut)
async def create_conversation(
    request: ConversationCreate,
    user_ctx: UserContext = Depends(get_current_user),
) -> Conversation:
    """
    Start a new conversation.

    **Request Body:**
    ```json
    {"title": "Algebra"}
    ```
    """
    return await database.create_conversation(user_ctx.user_id, request.title)


@router.get("/{conversation_id}", response_model=ConversationOut)
async def get_conversation(
    conversation_id: int,
    conversation: Conversation = Depends(owned_conversation),
) -> Conversation:
    return conversation


@router.patch("/{conversation_id}", response_model=ConversationOut)
async def update_conversation(
    request: ConversationUpdate,
    conversation_id: int,
    user_ctx: UserContext = Depends(get_current_user),
) -> Conversation:
    """Rename a conversation. Omitted fields are left unchanged."""
    conversation = await owned_conversation.fetch(conversation_id, user_ctx)
    updated = await database.update_conversation(conversation.id, user_ctx.user_id, title=request.title)
    if not updated:
        raise owned_conversation.not_found()
    return updated


@router.delete("/{conversation_id}", response_model=SuccessResponse)
async def delete_conversation(
    conversation_id: int,
    conversation: Conversation = Depends(owned_conversation),
    user_ctx: UserContext = Depends(get_current_user),
) -> SuccessResponse:
    """Delete a conversation together with all of its messages."""
    deleted = await database.delete_conversation(conversation.id, user_ctx.user_id)
    if not deleted:
        raise owned_conversation.not_found()
    return SuccessResponse()


@router.get("/{conversation_id}/messages", response_model=list[MessageOut])
async def list_messages(
    conversation_id: int,
    conversation: Conversation = Depends(owned_conversation),
):
    """Messages of a conversation in chronological order."""
    return await database.list_messages(conversation.id)


@router.post("/{conversation_id}/messages")
async def send_message(
    request: MessageCreate,
    conversation_id: int,
    user_ctx: UserContext = Depends(get_current_user),
    client: AsyncOpenAI | None = Depends(get_openai_client),
) -> StreamingResponse:
    """
    Send a message and stream the assistant's reply.

    The user message is stored before the completion request is made. The
    response is a `text/event-stream`:

    ```
    data: {"content": "A "}

    data: {"content": "derivative "}

    data: [DONE]
    ```

    The assistant message is stored once the upstream stream has ended, just
    before `[DONE]`. If the upstream fails mid-stream the response is aborted
    and no assistant message is stored.

    Counted against the caller's completion quota once ownership is
    confirmed; over quota answers 429 and nothing is stored.
    """
    conversation = await owned_conversation.fetch(conversation_id, user_ctx)

    if not client:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OpenAI API Key not configured")

    await conversation_quota.check(f"user:{user_ctx.user_id}")

    relay = ChatRelay(client)
    try:
        events = await relay.start_conversation_reply(conversation, request.content)
    except UpstreamUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)
