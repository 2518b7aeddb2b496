"""
Durable User Store Abstract Interface

Provides one capability interface for the system of record, so the account
orchestrator works the same against PostgreSQL (Tortoise ORM) or the
in-memory store used by tests and local runs.
"""
import uuid
from abc import ABC, abstractmethod
from typing import List

from .credentials import User


class UserStore(ABC):
    """Durable User Store Abstract Base Class"""

    @abstractmethod
    async def create(self, user: User) -> User:
        """
        Persist a new account.

        Raises:
        - DuplicateKey: email already taken (uniqueness constraint)
        """

    @abstractmethod
    async def find_by_email(self, email: str) -> User:
        """Raises NotFound when no account has this email."""

    @abstractmethod
    async def find_by_id(self, user_id: uuid.UUID) -> User:
        """Raises NotFound when the id is unknown."""

    @abstractmethod
    async def update_by_id(self, user: User) -> User:
        """
        Overwrite the mutable fields of user.id.

        Raises:
        - NotFound: the row is gone
        - DuplicateKey: the new email collides with another account
        """

    @abstractmethod
    async def delete_by_id(self, user_id: uuid.UUID) -> int:
        """Delete the row and return the number of rows affected (0 or 1)."""

    @abstractmethod
    async def find_all(self, limit: int, offset: int) -> List[User]:
        """Page through accounts, newest first."""

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def exists_with_role(self, role: str) -> bool:
        """True when at least one account holds role."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name (e.g., "PostgreSQL (Tortoise ORM)")"""
