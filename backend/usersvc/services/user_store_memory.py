"""
In-memory User Store

Dict-backed implementation of the durable store interface. Enforces the same
email uniqueness the database index does; used by tests and local runs
without PostgreSQL.
"""
import datetime as dt
import uuid
from typing import Dict, List

from usersvc.core.errors import DuplicateKey, NotFound
from .credentials import User
from .user_store_base import UserStore


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class InMemoryUserStore(UserStore):
    """Process-local store; every method completes without yielding, so no locks"""

    def __init__(self):
        self._rows: Dict[uuid.UUID, User] = {}

    @property
    def name(self) -> str:
        return "In-memory"

    def _email_taken(self, email: str, exclude_id=None) -> bool:
        return any(u.email == email and u.id != exclude_id for u in self._rows.values())

    async def create(self, user: User) -> User:
        if self._email_taken(user.email):
            raise DuplicateKey(f"email already exists: {user.email}")
        now = _now()
        row = user.model_copy(update={
            "id": uuid.uuid4(),
            "avatar": user.avatar or None,
            "created_at": now,
            "updated_at": now,
        })
        self._rows[row.id] = row
        return row.model_copy()

    async def find_by_email(self, email: str) -> User:
        for row in self._rows.values():
            if row.email == email:
                return row.model_copy()
        raise NotFound("User not found", code="USER_NOT_FOUND")

    async def find_by_id(self, user_id: uuid.UUID) -> User:
        row = self._rows.get(user_id)
        if row is None:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        return row.model_copy()

    async def update_by_id(self, user: User) -> User:
        current = self._rows.get(user.id)
        if current is None:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        if self._email_taken(user.email, exclude_id=user.id):
            raise DuplicateKey(f"email already exists: {user.email}")
        row = user.model_copy(update={"created_at": current.created_at, "updated_at": _now()})
        self._rows[row.id] = row
        return row.model_copy()

    async def delete_by_id(self, user_id: uuid.UUID) -> int:
        return 1 if self._rows.pop(user_id, None) is not None else 0

    async def find_all(self, limit: int, offset: int) -> List[User]:
        rows = sorted(self._rows.values(), key=lambda u: u.created_at, reverse=True)
        return [u.model_copy() for u in rows[offset:offset + limit]]

    async def count(self) -> int:
        return len(self._rows)

    async def exists_with_role(self, role: str) -> bool:
        return any(u.role == role for u in self._rows.values())
