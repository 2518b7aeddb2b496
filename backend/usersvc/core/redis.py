# usersvc/core/redis.py
"""
Redis client setup.
One client (and its connection pool) is shared process-wide by the user
cache and the session store.
"""
import logging

import redis.asyncio as redis

logger = logging.getLogger("uvicorn.error")


def create_redis_client(url: str, socket_timeout: float) -> redis.Redis:
    """
    Create the shared Redis client.

    Args:
        url: Redis URL (redis://host:port/db)
        socket_timeout: Seconds before a blocked command fails with TimeoutError

    Returns:
        redis.asyncio.Redis client; connections are opened lazily per command
    """
    logger.info("[redis] client for %s (timeout=%ss)", url, socket_timeout)
    return redis.from_url(
        url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


async def close_redis(client: redis.Redis) -> None:
    """Release pooled connections."""
    await client.aclose()
