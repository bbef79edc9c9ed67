"""
Streaming relay between the completion API and the browser.

Two variants:
1. Conversation relay: persists the user turn, streams the reply seeded with
   the full conversation history, then persists the assembled assistant turn.
2. Guest relay: single-turn, nothing is ever written to the database.

Ordering inside one request is strict: user message write, upstream open,
tokens forwarded in arrival order, assistant message write, [DONE].
There is no transaction around the whole exchange. If the process dies or the
upstream fails after the user write, the conversation keeps an unanswered user
turn, and a retry re-sends it as part of the history.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator
from typing import Any

from openai import AsyncOpenAI

from luxai.core.config import settings
from luxai.models import ROLE_ASSISTANT, ROLE_USER, Conversation
from luxai.services.database import StoreError, database
from luxai.services.events import DONE_EVENT, format_event, token_event
from luxai.services.prompts import GUEST_FALLBACK_MESSAGE, build_messages

logger = logging.getLogger("luxai.relay")


class UpstreamUnavailableError(Exception):
    """The streaming completion request could not be opened."""


class UpstreamStreamError(Exception):
    """The completion stream failed after it started."""


async def iter_tokens(stream: AsyncIterable[Any]) -> AsyncIterator[str]:
    """Yield non-empty content deltas from an OpenAI chat completion stream."""
    async for chunk in stream:
        choices = getattr(chunk, "choices", None)
        if not choices:
            continue
        delta = choices[0].delta
        content = getattr(delta, "content", None) if delta is not None else None
        if content:
            yield content


async def _close_stream(stream: Any) -> None:
    """Release the upstream HTTP response."""
    try:
        await stream.close()
    except Exception as e:
        logger.warning("Error closing completion stream: %s", e)


class ChatRelay:
    """
    Relays one chat completion per request as Server-Sent Events.

    Each call owns its own accumulation buffer; instances hold no
    per-conversation state and can be created per request.
    """

    def __init__(self, client: AsyncOpenAI, model: str | None = None):
        self.client = client
        self.model = model or settings.OPENAI_MODEL

    async def _open_upstream(self, messages: list[dict[str, str]]) -> Any:
        return await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            stream=True,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )

    async def start_conversation_reply(
        self,
        conversation: Conversation,
        content: str,
    ) -> AsyncGenerator[str, None]:
        """
        Persist the user turn and open the upstream stream.

        Everything here runs before response headers are sent, so failures
        surface as ordinary HTTP errors. The caller must have verified that
        `conversation` belongs to the requesting user.

        Returns:
            Async generator of SSE-framed events for the response body.

        Raises:
            StoreError: the user message or history could not be read/written.
            UpstreamUnavailableError: the completion request could not be opened.
        """
        await database.add_message(conversation.id, ROLE_USER, content)

        history = await database.list_messages(conversation.id)
        messages = build_messages([{"role": m.role, "content": m.content} for m in history])

        try:
            stream = await self._open_upstream(messages)
        except Exception as e:
            logger.error("Could not open completion stream for conversation %s: %s", conversation.id, e)
            raise UpstreamUnavailableError("Upstream completion service unavailable") from e

        return self._relay_and_persist(conversation.id, stream)

    async def _relay_and_persist(self, conversation_id: int, stream: Any) -> AsyncGenerator[str, None]:
        """
        Forward tokens, then store the full reply and emit [DONE].

        Upstream failures and client disconnects end the generator before the
        assistant message is written.
        """
        parts: list[str] = []
        try:
            async for token in iter_tokens(stream):
                parts.append(token)
                yield token_event(token)
        except (asyncio.CancelledError, GeneratorExit):
            logger.warning("Client disconnected from conversation %s; reply discarded", conversation_id)
            raise
        except Exception as e:
            logger.error("Completion stream failed for conversation %s: %s", conversation_id, e)
            raise UpstreamStreamError("Completion stream failed") from e
        finally:
            await _close_stream(stream)

        reply = "".join(parts)
        try:
            await database.add_message(conversation_id, ROLE_ASSISTANT, reply)
        except StoreError:
            logger.error("Assistant reply for conversation %s could not be stored", conversation_id)
            raise

        logger.info("Stored %d-character reply for conversation %s", len(reply), conversation_id)
        yield DONE_EVENT

    async def guest_reply(self, message: str) -> AsyncGenerator[str, None]:
        """
        Stream a single-turn reply without touching the database.

        Any upstream failure, at open or mid-stream, ends the stream with one
        fallback assistant event followed by [DONE].
        """
        messages = build_messages([{"role": ROLE_USER, "content": message}])
        stream = None
        try:
            stream = await self._open_upstream(messages)
            async for token in iter_tokens(stream):
                yield token_event(token)
        except Exception as e:
            logger.error("Guest completion failed: %s", e)
            yield format_event({"role": ROLE_ASSISTANT, "content": GUEST_FALLBACK_MESSAGE})
        finally:
            if stream is not None:
                await _close_stream(stream)

        yield DONE_EVENT
