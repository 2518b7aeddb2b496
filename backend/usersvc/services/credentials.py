"""
Credential model.

The account as the core sees it: identity fields plus the password hash.
The ORM row (usersvc.models.user.User) is converted into this model at the
store boundary, so the orchestrator never depends on a storage engine.
"""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from usersvc.core import security
from usersvc.core.errors import HashingError, InvalidCredentials, ValidationError

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"


class User(BaseModel):
    """
    Account identity and credentials.

    `password` holds the plaintext only between request binding and
    `prepare_create()`; afterwards it is always an Argon2 hash. It is excluded
    from every dump, so neither API responses nor cache snapshots carry it.
    """
    id: Optional[uuid.UUID] = None
    email: str
    first_name: str
    last_name: str
    role: str = ROLE_USER
    avatar: Optional[str] = None
    password: Optional[str] = Field(default=None, exclude=True)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, record) -> "User":
        """Build from a Tortoise `User` row."""
        return cls(
            id=record.id,
            email=record.email,
            first_name=record.first_name,
            last_name=record.last_name,
            role=record.role,
            avatar=record.avatar,
            password=record.password_hash,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def normalize(self) -> None:
        """Fold email case, trim password and check the role."""
        self.email = self.email.strip().lower()
        if self.password is not None:
            self.password = self.password.strip()
        if self.role:
            self.role = self.role.strip().lower()
            if self.role not in (ROLE_ADMIN, ROLE_USER):
                raise ValidationError(f"role invalid: {self.role}", code="ROLE_INVALID")

    def hash_password(self) -> None:
        """Replace the plaintext password with its Argon2 hash."""
        if not self.password:
            raise ValidationError("password required", code="PASSWORD_REQUIRED")
        try:
            self.password = security.hash_password(self.password)
        except Exception as e:  # argon2 raises its own error types on resource failure
            raise HashingError() from e

    def prepare_create(self) -> None:
        self.normalize()
        self.hash_password()

    def verify(self, plaintext: str) -> None:
        """
        Check plaintext against the stored hash.

        Raises:
            InvalidCredentials: On mismatch, without saying which field was wrong
        """
        if not self.password:
            raise InvalidCredentials()
        try:
            matched = security.verify_password(plaintext, self.password)
        except (ValueError, TypeError) as e:
            logger.warning("Stored password hash for user %s is unusable: %s", self.id, e)
            raise InvalidCredentials() from e
        if not matched:
            raise InvalidCredentials()

    def redact(self) -> "User":
        """Copy without the password, for anything leaving the trust boundary."""
        return self.model_copy(update={"password": None})
