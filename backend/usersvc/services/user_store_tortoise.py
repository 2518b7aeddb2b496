"""
Tortoise ORM User Store

Adapts the `users` table to the durable store interface. Each call is a single
statement, so a cancelled request never leaves a half-applied write.
"""
import uuid
from typing import List

from tortoise.exceptions import IntegrityError, OperationalError

from usersvc.core.errors import DuplicateKey, NotFound, StoreError
from usersvc.models.user import User as UserRecord
from .credentials import User
from .user_store_base import UserStore


class TortoiseUserStore(UserStore):
    """PostgreSQL-backed store (SQLite in tests)"""

    @property
    def name(self) -> str:
        return "PostgreSQL (Tortoise ORM)"

    async def create(self, user: User) -> User:
        try:
            record = await UserRecord.create(
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                password_hash=user.password,
                role=user.role,
                avatar=user.avatar or None,
            )
        except IntegrityError as e:
            raise DuplicateKey(f"email already exists: {user.email}") from e
        except OperationalError as e:
            raise StoreError("Failed to create user") from e
        return User.from_record(record)

    async def find_by_email(self, email: str) -> User:
        try:
            record = await UserRecord.get_or_none(email=email)
        except OperationalError as e:
            raise StoreError("Failed to look up user by email") from e
        if record is None:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        return User.from_record(record)

    async def find_by_id(self, user_id: uuid.UUID) -> User:
        try:
            record = await UserRecord.get_or_none(id=user_id)
        except OperationalError as e:
            raise StoreError("Failed to look up user by id") from e
        if record is None:
            raise NotFound("User not found", code="USER_NOT_FOUND")
        return User.from_record(record)

    async def update_by_id(self, user: User) -> User:
        try:
            record = await UserRecord.get_or_none(id=user.id)
            if record is None:
                raise NotFound("User not found", code="USER_NOT_FOUND")
            record.email = user.email
            record.first_name = user.first_name
            record.last_name = user.last_name
            record.password_hash = user.password
            record.role = user.role
            record.avatar = user.avatar
            await record.save()
        except IntegrityError as e:
            raise DuplicateKey(f"email already exists: {user.email}") from e
        except OperationalError as e:
            raise StoreError("Failed to update user") from e
        return User.from_record(record)

    async def delete_by_id(self, user_id: uuid.UUID) -> int:
        try:
            return await UserRecord.filter(id=user_id).delete()
        except OperationalError as e:
            raise StoreError("Failed to delete user") from e

    async def find_all(self, limit: int, offset: int) -> List[User]:
        try:
            records = await UserRecord.all().order_by("-created_at").offset(offset).limit(limit)
        except OperationalError as e:
            raise StoreError("Failed to list users") from e
        return [User.from_record(r) for r in records]

    async def count(self) -> int:
        try:
            return await UserRecord.all().count()
        except OperationalError as e:
            raise StoreError("Failed to count users") from e

    async def exists_with_role(self, role: str) -> bool:
        try:
            return await UserRecord.filter(role=role).exists()
        except OperationalError as e:
            raise StoreError("Failed to look up users by role") from e
