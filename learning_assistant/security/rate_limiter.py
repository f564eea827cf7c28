"""Rate limiting implementation"""

from typing import Callable
import logging
import math
import time
import uuid

from fastapi import Depends, Request
from redis import Redis

from learning_assistant.config import settings
from learning_assistant.exceptions import RateLimitException
from learning_assistant.security.auth import get_current_user_id

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit:"


class RateLimiter:
    """
    Sliding-window rate limiter using Redis sorted sets

    Each caller has one sorted set of request timestamps. Stale entries are
    pruned whenever the caller is checked, and the key expires one window
    after the caller's last request, so idle callers drop out on their own.
    Redis errors fail open.
    """

    def __init__(
        self,
        limit: int = settings.RATE_LIMIT_MAX_REQUESTS,
        window: float = settings.RATE_LIMIT_WINDOW_SECONDS,
        redis_client=None,
        clock: Callable[[], float] = time.time
    ):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.redis = redis_client if redis_client is not None else Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5
        )

    def _key(self, identifier: str) -> str:
        return f"{KEY_PREFIX}{identifier}"

    def _count(self, identifier: str, now: float) -> int:
        """Drop timestamps older than the window and count the rest"""
        key = self._key(identifier)
        self.redis.zremrangebyscore(key, "-inf", now - self.window)
        return self.redis.zcard(key)

    def allow(self, identifier: str) -> bool:
        """
        Check if request is allowed under rate limit

        Args:
            identifier: Unique identifier (e.g., client address)

        Returns:
            True if request allowed, False otherwise
        """
        try:
            count = self._count(identifier, self.clock())
        except Exception as e:
            logger.error(f"Rate limiter error: {str(e)}")
            # Fail open - allow request if Redis unavailable
            return True

        if count >= self.limit:
            logger.warning(f"Rate limit exceeded for {identifier}: {count}/{self.limit}")
            return False
        return True

    def record(self, identifier: str):
        """Track a request"""
        key = self._key(identifier)
        now = self.clock()
        try:
            self.redis.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
            self.redis.expire(key, math.ceil(self.window))
        except Exception as e:
            logger.error(f"Rate limiter error: {str(e)}")

    def allow_request(self, identifier: str) -> bool:
        """Check and, when allowed, record in one step"""
        if not self.allow(identifier):
            return False
        self.record(identifier)
        return True

    def get_remaining(self, identifier: str) -> int:
        """Get remaining requests in current window"""
        try:
            return max(0, self.limit - self._count(identifier, self.clock()))
        except Exception:
            return self.limit

    def retry_after(self, identifier: str) -> int:
        """Seconds until the oldest request in the window expires"""
        try:
            oldest = self.redis.zrange(self._key(identifier), 0, 0, withscores=True)
        except Exception:
            return 0
        if not oldest:
            return 0
        return max(1, math.ceil(self.window - (self.clock() - oldest[0][1])))

    def cleanup(self) -> int:
        """
        Full sweep: prune every caller's stale timestamps

        Redis deletes a sorted set once its last member is removed.

        Returns:
            Number of callers removed
        """
        now = self.clock()
        removed = 0
        try:
            for key in self.redis.scan_iter(match=f"{KEY_PREFIX}*"):
                self.redis.zremrangebyscore(key, "-inf", now - self.window)
                if self.redis.zcard(key) == 0:
                    removed += 1
        except Exception as e:
            logger.error(f"Rate limiter sweep error: {str(e)}")
            return removed

        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} idle callers")
        return removed


# Global rate limiter instance
rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Rate limiter dependency"""
    return rate_limiter


async def enforce_rate_limit(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    limiter: RateLimiter = Depends(get_rate_limiter)
):
    """
    Inbound request governor for AI endpoints

    Runs after the caller is authenticated, so unauthenticated requests
    do not spend the window.

    Raises:
        RateLimitException: When the caller exhausted its window
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    identifier = request.client.host if request.client else "unknown"
    if not limiter.allow(identifier):
        raise RateLimitException(
            "Too many AI requests. Please wait before trying again.",
            retry_after=limiter.retry_after(identifier) or int(limiter.window)
        )
    limiter.record(identifier)
