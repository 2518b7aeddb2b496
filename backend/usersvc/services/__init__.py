"""
Services Module

Account core and the stores it composes:
- Credential model (identity, password hashing and verification)
- Durable user store (Tortoise ORM / in-memory)
- User cache (Redis, best effort)
- Session store (Redis, authoritative for liveness)
- Account orchestrator and its factory
"""

from .credentials import User, ROLE_ADMIN, ROLE_USER
from .user_store_base import UserStore
from .user_store_memory import InMemoryUserStore
from .user_store_tortoise import TortoiseUserStore
from .user_cache import RedisUserCache, USER_CACHE_TTL
from .session_store import RedisSessionStore, Session
from .accounts import AccountService, UserChanges, UserPage
from .factory import build_account_service, build_token_issuer

__all__ = [
    # Credential model
    "User",
    "ROLE_ADMIN",
    "ROLE_USER",
    # Durable store
    "UserStore",
    "InMemoryUserStore",
    "TortoiseUserStore",
    # Cache & sessions
    "RedisUserCache",
    "USER_CACHE_TTL",
    "RedisSessionStore",
    "Session",
    # Orchestrator
    "AccountService",
    "UserChanges",
    "UserPage",
    "build_account_service",
    "build_token_issuer",
]
