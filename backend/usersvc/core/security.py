# usersvc/core/security.py
"""
Security module for authentication.
Handles password hashing and the signed access/refresh token pair bound to a session.
"""
import datetime as dt
from dataclasses import dataclass
from typing import Callable, Optional

import jwt  # PyJWT
from passlib.context import CryptContext

from usersvc.core.errors import ConfigurationError, InvalidToken

# Password hashing context
# Argon2 is a modern, secure password hashing algorithm (random salt per hash)
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# Only symmetric MAC algorithms are accepted, the secret is shared by sign and verify
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
ACCESS_TOKEN_TTL = dt.timedelta(minutes=15)
REFRESH_TOKEN_TTL = dt.timedelta(hours=24)
USER_ROLES = ("admin", "user")


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain: Plain text password to verify
        hashed: Hashed password from database

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)


@dataclass(frozen=True)
class AccessClaims:
    """Claims carried by a short-lived access token."""
    session_id: str
    user_id: str
    email: str
    role: str
    exp: int


@dataclass(frozen=True)
class RefreshClaims:
    """Claims carried by a refresh token. Only the session binding, no user data."""
    session_id: str
    exp: int


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _require_str(payload: dict, name: str) -> str:
    value = payload.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidToken(f"Token claim '{name}' is missing or malformed")
    return value


class TokenIssuer:
    """
    Mints and verifies the access/refresh token pair.

    Both tokens are signed with the same secret and always carry the session id
    they were issued for. A valid signature alone does not authorize anything:
    callers still have to check the session is live in the session store.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: dt.timedelta = ACCESS_TOKEN_TTL,
        refresh_ttl: dt.timedelta = REFRESH_TOKEN_TTL,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ):
        if algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(f"Unsupported signing algorithm: {algorithm}")
        self._secret = secret
        self._algorithm = algorithm
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._clock = clock or _utcnow

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def _sign(self, payload: dict) -> str:
        if not self._secret:
            raise ConfigurationError("JWT secret is not configured")
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise ConfigurationError("Failed to sign token") from e

    def issue_pair(self, user, session_id: str) -> TokenPair:
        """
        Issue an access token and a refresh token bound to session_id.

        Args:
            user: Account owning the session (needs id, email, role)
            session_id: Live session the tokens are bound to

        Returns:
            TokenPair with both encoded tokens

        Raises:
            ConfigurationError: If the secret is missing or signing fails
        """
        now = self._clock()
        access = {
            "session_id": session_id,
            "user_id": str(user.id),
            "email": user.email,
            "role": user.role,
            "exp": now + self._access_ttl,
        }
        refresh = {
            "session_id": session_id,
            "exp": now + self._refresh_ttl,
        }
        return TokenPair(access_token=self._sign(access), refresh_token=self._sign(refresh))

    def _decode(self, token: str, required: list[str]) -> dict:
        if not token:
            raise InvalidToken("Token is empty")
        try:
            # algorithms is pinned, so "none" and asymmetric headers are rejected
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": required},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken("Token is invalid") from e

    def parse_access(self, token: str) -> AccessClaims:
        """
        Decode and validate an access token.

        Raises:
            InvalidToken: On bad signature, unexpected algorithm, expiry or missing claims
        """
        payload = self._decode(token, ["exp", "session_id", "user_id", "email", "role"])
        role = _require_str(payload, "role")
        if role not in USER_ROLES:
            raise InvalidToken("Token claim 'role' is malformed")
        return AccessClaims(
            session_id=_require_str(payload, "session_id"),
            user_id=_require_str(payload, "user_id"),
            email=_require_str(payload, "email"),
            role=role,
            exp=int(payload["exp"]),
        )

    def parse_refresh(self, token: str) -> RefreshClaims:
        """
        Decode and validate a refresh token.

        Access tokens are refused here even though they also carry a session id.

        Raises:
            InvalidToken: On bad signature, unexpected algorithm, expiry or missing claims
        """
        payload = self._decode(token, ["exp", "session_id"])
        if "user_id" in payload:
            raise InvalidToken("Access token presented as refresh token")
        return RefreshClaims(
            session_id=_require_str(payload, "session_id"),
            exp=int(payload["exp"]),
        )
