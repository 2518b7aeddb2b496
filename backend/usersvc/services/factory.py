"""
Account Service Factory

Wires configuration and the shared clients into one AccountService.
"""
import datetime as dt
import logging
from typing import Optional

from usersvc.config import Settings
from usersvc.core.security import TokenIssuer
from .accounts import AccountService
from .session_store import RedisSessionStore
from .user_cache import RedisUserCache
from .user_store_base import UserStore
from .user_store_tortoise import TortoiseUserStore

logger = logging.getLogger("uvicorn.error")


def build_token_issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_alg,
        access_ttl=dt.timedelta(minutes=settings.access_token_expire_minutes),
        refresh_ttl=dt.timedelta(hours=settings.refresh_token_expire_hours),
    )


def build_account_service(
    settings: Settings,
    redis_client,
    user_store: Optional[UserStore] = None,
) -> AccountService:
    """
    Build the account service.

    Parameters:
    - settings: Application settings (TTLs, secret, timeouts)
    - redis_client: Shared redis.asyncio client for cache and sessions
    - user_store: Durable store; defaults to the Tortoise (PostgreSQL) store

    Returns:
    - AccountService ready to be shared by all requests
    """
    user_store = user_store or TortoiseUserStore()
    logger.info("[accounts] durable store: %s", user_store.name)
    return AccountService(
        user_store=user_store,
        user_cache=RedisUserCache(redis_client, timeout=settings.cache_timeout_seconds),
        session_store=RedisSessionStore(redis_client),
        token_issuer=build_token_issuer(settings),
        session_ttl=settings.session_expire,
        cache_ttl=settings.user_cache_ttl,
    )
