"""
Quotas on completion requests.

Only the routes that open an upstream completion cost money, so only they are
counted: conversation replies per signed-in user and guest replies per client
IP, each under its own limit, plus one shared ceiling across both. Counters are
fixed windows in Redis. CRUD routes are never limited.

When quotas are enabled and Redis cannot count a request, the request is
refused with 503 rather than let through uncounted.
"""

import logging
import time

import redis.asyncio as redis
from fastapi import HTTPException, status
from redis.exceptions import RedisError

from luxai.core.config import settings

logger = logging.getLogger("luxai.quota")

SHARED_SCOPE = "completions"


class QuotaStoreError(Exception):
    """Redis is not connected or failed while counting."""


class QuotaStore:
    """Fixed-window hit counters kept in Redis."""

    def __init__(self):
        self.client: redis.Redis | None = None

    @property
    def is_available(self) -> bool:
        return self.client is not None

    async def connect(self, url: str | None = None) -> bool:
        """
        Connect and ping Redis.

        Returns:
            True if Redis answered, False otherwise.
        """
        url = url or settings.REDIS_URL
        if not url:
            logger.warning("REDIS_URL not configured - completion quotas cannot be counted")
            return False

        try:
            client = redis.from_url(url, decode_responses=True)
        except ValueError as e:
            logger.error("Invalid REDIS_URL: %s", e)
            return False

        try:
            await client.ping()
        except RedisError as e:
            logger.error("Redis at %s unreachable: %s", settings.sanitize_url(url), e)
            await client.aclose()
            return False

        self.client = client
        logger.info("Counting completion quotas in Redis at %s", settings.sanitize_url(url))
        return True

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("Redis connection closed")

    async def hit(self, keys: list[str], ttl: int) -> list[int]:
        """
        Increment every key by one in a single round trip.

        Returns:
            The new count of each key, in order.

        Raises:
            QuotaStoreError: Redis is not connected or the pipeline failed.
        """
        if self.client is None:
            raise QuotaStoreError("Redis not connected")

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                for key in keys:
                    pipe.incr(key)
                    pipe.expire(key, ttl)
                results = await pipe.execute()
        except RedisError as e:
            raise QuotaStoreError(f"Quota counting failed: {e}") from e

        # Replies alternate INCR, EXPIRE
        return [int(count) for count in results[::2]]


class CompletionQuota:
    """
    Per-caller limit for one family of completion routes.

    Args:
        scope: Key namespace, e.g. "conversation" or "guest".
        limit_setting: Name of the settings field holding the per-caller limit,
            read on every check so it follows the live settings.
    """

    def __init__(self, scope: str, limit_setting: str):
        self.scope = scope
        self.limit_setting = limit_setting

    @property
    def limit(self) -> int:
        return getattr(settings, self.limit_setting)

    async def check(self, caller: str, now: float | None = None) -> None:
        """
        Count one completion request for `caller`.

        Raises:
            HTTPException: 429 with Retry-After when the caller or the shared
                ceiling is over its limit, 503 when counting failed.
        """
        if not settings.ENABLE_RATE_LIMITING:
            return

        window = settings.RATE_LIMIT_WINDOW_SECONDS
        current = int(now if now is not None else time.time())
        window_start = current - current % window
        keys = [
            f"quota:{SHARED_SCOPE}:{window_start}",
            f"quota:{self.scope}:{caller}:{window_start}",
        ]

        try:
            shared_count, caller_count = await quota_store.hit(keys, ttl=window + 1)
        except QuotaStoreError as e:
            logger.error("Refusing %s completion, quota not counted: %s", self.scope, e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rate limiting unavailable",
            ) from e

        if caller_count > self.limit or shared_count > settings.RATE_LIMIT_COMPLETIONS_PER_WINDOW:
            logger.warning("%s quota exceeded for %s", self.scope, caller)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded. Please retry later.",
                headers={"Retry-After": str(window_start + window - current)},
            )


# Global instances
quota_store = QuotaStore()
conversation_quota = CompletionQuota("conversation", "RATE_LIMIT_CONVERSATION_PER_WINDOW")
guest_quota = CompletionQuota("guest", "RATE_LIMIT_GUEST_PER_WINDOW")
