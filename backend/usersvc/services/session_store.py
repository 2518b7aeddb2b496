"""
Session store.

Redis is authoritative for session liveness: a missing key means the session
expired or was deleted (SessionNotFound, a business outcome), while transport
failures surface as SessionStoreError so they are never mistaken for either
"logged out" or "logged in".
"""
import json
import logging
import uuid
from dataclasses import dataclass

import redis.asyncio as redis
from redis.exceptions import RedisError

from usersvc.core.errors import SessionNotFound, SessionStoreError, ValidationError

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "sessions:"
_MAX_CREATE_ATTEMPTS = 3


@dataclass(frozen=True)
class Session:
    """Live binding of an opaque session id to its owner."""
    session_id: str
    user_id: str


class RedisSessionStore:
    """
    session id -> {user_id}, each key expiring exactly ttl seconds after creation.

    Sessions are immutable: there is no update path, only create/get/delete.
    """

    def __init__(self, client: redis.Redis, prefix: str = SESSION_KEY_PREFIX):
        self._client = client
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def create(self, user_id, ttl_seconds: int) -> str:
        """
        Create a session for user_id and return its new id.

        The id is a random uuid4 (122 random bits). SET NX refuses to overwrite
        a live key, so an id is never shared by two live sessions.

        Raises:
            ValidationError: ttl_seconds is not positive
            SessionStoreError: Redis is unreachable
        """
        if ttl_seconds <= 0:
            raise ValidationError("session ttl must be positive")
        for _ in range(_MAX_CREATE_ATTEMPTS):
            session_id = str(uuid.uuid4())
            payload = json.dumps({"session_id": session_id, "user_id": str(user_id)})
            try:
                created = await self._client.set(self._key(session_id), payload, ex=ttl_seconds, nx=True)
            except RedisError as e:
                raise SessionStoreError("Failed to create session") from e
            if created:
                return session_id
            logger.warning("[session] id collision on %s, regenerating", session_id)
        raise SessionStoreError("Could not allocate a unique session id")

    async def get(self, session_id: str) -> Session:
        """
        Resolve a live session.

        Raises:
            SessionNotFound: Unknown, expired or deleted session
            SessionStoreError: Redis failure or corrupt session payload
        """
        if not session_id:
            raise SessionNotFound()
        try:
            raw = await self._client.get(self._key(session_id))
        except RedisError as e:
            raise SessionStoreError("Failed to read session") from e
        if raw is None:
            raise SessionNotFound()
        try:
            data = json.loads(raw)
            return Session(session_id=session_id, user_id=str(data["user_id"]))
        except (ValueError, KeyError, TypeError) as e:
            raise SessionStoreError("Corrupt session payload") from e

    async def delete(self, session_id: str) -> None:
        """Delete a session. Deleting an unknown id is not an error."""
        if not session_id:
            return
        try:
            await self._client.delete(self._key(session_id))
        except RedisError as e:
            raise SessionStoreError("Failed to delete session") from e
