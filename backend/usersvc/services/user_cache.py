"""
Cache-aside store for user snapshots.

Redis is a best-effort mirror of the durable store: every failure (connection,
timeout, corrupt payload) is logged and reported as a miss or a no-op, so the
caller falls back to the database instead of failing the request.
"""
import asyncio
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from pydantic import ValidationError as SnapshotError

from .credentials import User

logger = logging.getLogger(__name__)

USER_CACHE_TTL = 3600  # seconds
USER_KEY_PREFIX = "user:"


class RedisUserCache:
    """
    User id -> user snapshot, with a fixed TTL per entry.

    Snapshots never contain the password hash. Concurrent writers may race;
    the last write wins, which is harmless for snapshots keyed by immutable id.
    """

    def __init__(self, client: redis.Redis, prefix: str = USER_KEY_PREFIX, timeout: float = 0.25):
        self._client = client
        self._prefix = prefix
        self._timeout = timeout  # Upper bound per call, a slow cache must not hold the response

    def _key(self, user_id) -> str:
        return f"{self._prefix}{user_id}"

    async def get(self, user_id) -> Optional[User]:
        """Return the cached user, or None on miss or any cache failure."""
        try:
            raw = await asyncio.wait_for(self._client.get(self._key(user_id)), self._timeout)
        except (RedisError, asyncio.TimeoutError) as e:
            logger.error("[user-cache] get %s failed: %s", user_id, e)
            return None
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except SnapshotError as e:
            logger.error("[user-cache] corrupt snapshot for %s: %s", user_id, e)
            return None

    async def put(self, user_id, ttl_seconds: int, user: User) -> bool:
        """Store a snapshot with ttl_seconds; failures are logged and reported as False."""
        try:
            await asyncio.wait_for(
                self._client.set(self._key(user_id), user.model_dump_json(), ex=ttl_seconds),
                self._timeout,
            )
        except (RedisError, asyncio.TimeoutError) as e:
            logger.error("[user-cache] set %s failed: %s", user_id, e)
            return False
        return True

    async def delete(self, user_id) -> None:
        """Invalidate a snapshot; entries self-expire, so failures are only logged."""
        try:
            await asyncio.wait_for(self._client.delete(self._key(user_id)), self._timeout)
        except (RedisError, asyncio.TimeoutError) as e:
            logger.error("[user-cache] delete %s failed: %s", user_id, e)
