"""
Rate Limiting Service

Sliding-window quota per identity, shared by every server process through a
Redis-protocol counter store.

KEYING:
- "user:<id>" for authenticated requests
- "ip:<address>" only for anonymous requests

ALGORITHM:
- One sorted set per key; member score = request time in milliseconds
- Each check trims members older than the window, counts the rest, and adds
  the current request only when under quota
- Rejected requests are not recorded, so a client that backs off recovers as
  soon as its oldest admitted request leaves the window
- Counting and adding are two round trips; concurrent requests may slightly
  over-admit

FAILURE POLICY:
- Any RedisError (connection refused, timeout, ...) fails OPEN: the request
  is admitted and a warning is logged.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    degraded: bool = False

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at_ms),
        }


def identity_key(user_id: str | None, client_ip: str | None) -> str:
    if user_id:
        return f"user:{user_id}"
    logger.debug("Rate limiter keying by IP for anonymous request")
    return f"ip:{client_ip or 'unknown'}"


class RateLimiter:
    """Process-scoped limiter; create once in create_app and share."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        limit: int = 100,
        window_seconds: int = 60,
        key_prefix: str = "shelfkeep:ratelimit",
        clock=time.time,
    ):
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.client = client
        self.limit = limit
        self.window_ms = window_seconds * 1000
        self.key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_config(cls, config, client: redis.Redis | None = None) -> "RateLimiter | None":
        """
        Build the limiter from app config, or return None when limiting is
        disabled or no backend is configured.
        """
        if not config.get("RATE_LIMIT_ENABLED", True):
            return None
        if client is None:
            url = config.get("REDIS_URL")
            if not url:
                return None
            timeout = config.get("REDIS_SOCKET_TIMEOUT", 0.5)
            client = redis.Redis.from_url(
                url,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        return cls(
            client,
            limit=int(config.get("RATE_LIMIT_REQUESTS", 100)),
            window_seconds=int(config.get("RATE_LIMIT_WINDOW_SECONDS", 60)),
            key_prefix=config.get("RATE_LIMIT_KEY_PREFIX", "shelfkeep:ratelimit"),
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def admit(self, key: str) -> RateLimitDecision:
        now_ms = self._now_ms()
        redis_key = f"{self.key_prefix}:{key}"

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.zremrangebyscore(redis_key, 0, now_ms - self.window_ms)
            pipe.zcard(redis_key)
            pipe.zrange(redis_key, 0, 0, withscores=True)
            _, count, oldest = pipe.execute()

            allowed = count < self.limit
            if allowed:
                pipe = self.client.pipeline(transaction=True)
                pipe.zadd(redis_key, {f"{now_ms}-{uuid.uuid4().hex}": now_ms})
                pipe.pexpire(redis_key, self.window_ms)
                pipe.execute()
                count += 1
        except redis.RedisError as e:
            logger.warning(
                "Rate limiter backend unavailable for key %s; admitting request (fail-open): %s",
                key,
                e,
            )
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=self.limit,
                reset_at_ms=now_ms + self.window_ms,
                degraded=True,
            )

        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        decision = RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_at_ms=oldest_ms + self.window_ms,
        )

        if allowed:
            logger.debug("Rate limit check passed for key %s (%s remaining)", key, decision.remaining)
        else:
            logger.warning("Rate limit exceeded for key %s", key)
        return decision
