"""
Account use cases.

Composes the durable user store, the user cache, the session store and the
token issuer into the register / login / find / update / delete / refresh
workflows. The service keeps only handles to those collaborators, so one
instance is shared by every request.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from usersvc.core.errors import (
    DuplicateKey,
    EmailExists,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    SessionExpired,
    SessionNotFound,
    SessionStoreError,
    StoreError,
    Unauthenticated,
    ValidationError,
)
from usersvc.core.security import AccessClaims, TokenIssuer, TokenPair
from .credentials import User
from .session_store import RedisSessionStore, Session
from .user_cache import USER_CACHE_TTL, RedisUserCache
from .user_store_base import UserStore

logger = logging.getLogger(__name__)


@dataclass
class UserChanges:
    """Partial update; None means "leave unchanged"."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    password: Optional[str] = None


@dataclass
class UserPage:
    items: List[User]
    total: int
    limit: int
    offset: int

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1 if self.limit else 1


def _as_uuid(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"invalid user id: {value}") from e


class AccountService:
    """Account Use-Case Orchestrator"""

    def __init__(
        self,
        user_store: UserStore,
        user_cache: RedisUserCache,
        session_store: RedisSessionStore,
        token_issuer: TokenIssuer,
        session_ttl: int,
        cache_ttl: int = USER_CACHE_TTL,
    ):
        self._users = user_store
        self._cache = user_cache
        self._sessions = session_store
        self._tokens = token_issuer
        self._session_ttl = session_ttl
        self._cache_ttl = cache_ttl

    # ------------------------------------------------------------------
    # Registration & login
    # ------------------------------------------------------------------
    async def register(self, candidate: User) -> User:
        """
        Create an account from an unsaved candidate.

        The lookup is only a fast path: the unique index on email is what
        actually stops concurrent duplicates, and its violation is reported as
        EmailExists too. Any lookup outcome other than a definite "not found"
        blocks the registration.

        Returns:
            The created user, without password

        Raises:
            ValidationError: Bad role
            HashingError: Password could not be hashed
            EmailExists: Email already registered
        """
        candidate.prepare_create()
        try:
            await self._users.find_by_email(candidate.email)
        except NotFound:
            pass
        except StoreError as e:
            logger.error("[register] email lookup failed for %s: %s", candidate.email, e)
            raise EmailExists() from e
        else:
            raise EmailExists()

        try:
            created = await self._users.create(candidate)
        except DuplicateKey as e:
            raise EmailExists() from e
        logger.info("[register] created user %s", created.id)
        return created.redact()

    async def login(self, email: str, password: str) -> User:
        """
        Check credentials and return the matching account.

        Unknown email and wrong password raise the same InvalidCredentials,
        with no cause attached; only the log line tells them apart.
        """
        email = (email or "").strip().lower()
        try:
            user = await self._users.find_by_email(email)
        except NotFound:
            logger.info("[login] no account for %s", email)
            raise InvalidCredentials() from None
        try:
            user.verify((password or "").strip())
        except InvalidCredentials:
            logger.info("[login] password mismatch for user %s", user.id)
            raise InvalidCredentials() from None
        return user.redact()

    async def start_session(self, user: User) -> Tuple[str, TokenPair]:
        """Open a session for an authenticated user and issue its token pair."""
        session_id = await self._sessions.create(user.id, self._session_ttl)
        try:
            tokens = self._tokens.issue_pair(user, session_id)
        except Exception:
            # Tokens were never handed out, drop the session they would have referenced
            try:
                await self._sessions.delete(session_id)
            except SessionStoreError as cleanup_error:
                logger.error("[login] could not drop orphan session %s: %s", session_id, cleanup_error)
            raise
        return session_id, tokens

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def find_by_id(self, user_id) -> User:
        """Durable store only. Never reads or fills the cache."""
        user = await self._users.find_by_id(_as_uuid(user_id))
        return user.redact()

    async def cached_find_by_id(self, user_id) -> User:
        """Cache first; on miss read the durable store and refill the cache."""
        user_id = _as_uuid(user_id)
        cached = await self._cache.get(user_id)
        if cached is not None:
            return cached.redact()

        user = await self._users.find_by_id(user_id)
        await self._cache.put(user.id, self._cache_ttl, user)
        return user.redact()

    async def find_by_email(self, email: str) -> User:
        user = await self._users.find_by_email((email or "").strip().lower())
        return user.redact()

    async def find_all(self, limit: int = 20, offset: int = 0) -> UserPage:
        if limit <= 0 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        users = await self._users.find_all(limit, offset)
        total = await self._users.count()
        return UserPage(items=[u.redact() for u in users], total=total, limit=limit, offset=offset)

    async def has_role(self, role: str) -> bool:
        return await self._users.exists_with_role(role)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def update_by_id(self, user_id, changes: UserChanges) -> User:
        """
        Merge the non-None fields of changes onto a freshly loaded record.

        The cache entry is overwritten with the result rather than dropped, so
        the next cached read is both warm and current. If that write fails the
        entry is dropped instead; an old snapshot must never outlive the update.
        """
        current = await self._users.find_by_id(_as_uuid(user_id))
        if changes.first_name is not None:
            current.first_name = changes.first_name
        if changes.last_name is not None:
            current.last_name = changes.last_name
        if changes.avatar is not None:
            current.avatar = changes.avatar
        if changes.password is not None:
            current.password = changes.password.strip()
            current.hash_password()

        updated = await self._users.update_by_id(current)
        if not await self._cache.put(updated.id, self._cache_ttl, updated):
            await self._cache.delete(updated.id)
        return updated.redact()

    async def delete_by_id(self, user_id) -> None:
        user_id = _as_uuid(user_id)
        rows = await self._users.delete_by_id(user_id)
        if rows == 0:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        await self._cache.delete(user_id)

    # ------------------------------------------------------------------
    # Sessions & tokens
    # ------------------------------------------------------------------
    async def logout(self, session_id: str) -> None:
        await self._sessions.delete(session_id)

    async def _live_session(self, session_id: str, expired_error) -> Session:
        try:
            return await self._sessions.get(session_id)
        except SessionNotFound as e:
            raise expired_error from e

    async def _session_owner(self, session: Session) -> User:
        try:
            owner_id = uuid.UUID(session.user_id)
        except ValueError as e:
            raise SessionStoreError("Corrupt session owner") from e
        try:
            return await self.cached_find_by_id(owner_id)
        except NotFound as e:
            raise Unauthenticated("Account no longer exists") from e

    async def get_me(self, session_id: str) -> User:
        """Resolve the session owner; a dead session is Unauthenticated."""
        session = await self._live_session(session_id, Unauthenticated("Session not found or expired"))
        return await self._session_owner(session)

    async def authenticate(self, access_token: str) -> AccessClaims:
        """
        Verify an access token, check its session is still live and that the
        account it names still exists.

        Raises:
            InvalidToken: Bad, expired or tampered token, or token/session mismatch
            SessionExpired: The bound session is gone
            Unauthenticated: The account was deleted
        """
        claims = self._tokens.parse_access(access_token)
        session = await self._live_session(claims.session_id, SessionExpired())
        if session.user_id != claims.user_id:
            raise InvalidToken("Token does not belong to this session")
        await self._session_owner(session)
        return claims

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair bound to the same session.

        The session is not rotated; once it is deleted or expired every refresh
        fails with SessionExpired.
        """
        claims = self._tokens.parse_refresh(refresh_token)
        session = await self._live_session(claims.session_id, SessionExpired())
        user = await self._session_owner(session)
        return self._tokens.issue_pair(user, session.session_id)
