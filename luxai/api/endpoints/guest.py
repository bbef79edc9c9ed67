"""Guest chat: unauthenticated, single-turn, never persisted."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from openai import AsyncOpenAI

from luxai.api.deps import get_openai_client
from luxai.schemas.chat import GuestChatRequest
from luxai.services.chat_relay import ChatRelay
from luxai.services.events import SSE_HEADERS
from luxai.services.quota import guest_quota

router = APIRouter()


@router.post("/chat")
async def guest_chat(
    request: GuestChatRequest,
    http_request: Request,
    client: AsyncOpenAI | None = Depends(get_openai_client),
) -> StreamingResponse:
    """
    Stream a reply to one message without an account.

    Same event framing as conversation messages. On upstream failure the
    stream carries a single apology event from the assistant, then `[DONE]`.
    Guest replies are counted per client IP and answer 429 over quota.
    """
    if not client:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OpenAI API Key not configured")

    host = http_request.client.host if http_request.client else "unknown"
    await guest_quota.check(f"ip:{host}")

    relay = ChatRelay(client)
    return StreamingResponse(relay.guest_reply(request.message), media_type="text/event-stream", headers=SSE_HEADERS)
