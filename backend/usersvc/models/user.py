# usersvc/models/user.py
"""
Database model for users.
Represents a user account in the system: identity, credentials and role.
"""
import uuid
from tortoise import fields, models


class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Email must be unique across all users (enforced by a unique index, the
      authority for concurrent registrations)
    - Role determines access level (user vs admin)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    email = fields.CharField(
        max_length=60,
        unique=True,
        index=True
    )  # Login email (lower-cased, must be unique, indexed for fast lookups)
    first_name = fields.CharField(max_length=30)
    last_name = fields.CharField(max_length=30)
    password_hash = fields.CharField(max_length=255)  # Argon2 hash, never plain text
    role = fields.CharField(max_length=16, default="user")  # "user" (default) or "admin"
    avatar = fields.CharField(max_length=512, null=True)  # Optional avatar reference (URL or object key)
    created_at = fields.DatetimeField(auto_now_add=True)  # Auto-set on creation
    updated_at = fields.DatetimeField(auto_now=True)  # Auto-set on every save

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name
