# usersvc/schemas/users.py
"""
Pydantic schemas for user and authentication endpoints.
Defines request/response models shared by the HTTP and RPC front doors.
"""
import datetime as dt
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from usersvc.services.credentials import ROLE_ADMIN, User

EMAIL_MAX_LENGTH = 60


def _check_email_length(value: str) -> str:
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


Email = Annotated[EmailStr, AfterValidator(_check_email_length)]


class RegisterIn(BaseModel):
    """
    Request model for account registration.
    Role is checked by the credential model (case-insensitive "admin"/"user").
    """
    email: Email
    first_name: str = Field(min_length=1, max_length=30)
    last_name: str = Field(min_length=1, max_length=30)
    password: str = Field(min_length=1)  # Plain text, hashed server-side
    role: str = "user"
    avatar: Optional[str] = None

    def requests_admin(self) -> bool:
        return self.role.strip().lower() == ROLE_ADMIN

    def to_candidate(self) -> User:
        return User(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            password=self.password,
            role=self.role,
            avatar=self.avatar or None,
        )


class LoginIn(BaseModel):
    """Request model for login (credentials)."""
    email: Email
    password: str = Field(min_length=1)


class RefreshIn(BaseModel):
    refresh_token: str = Field(min_length=1)


class UserUpdateIn(BaseModel):
    """
    Request model for updating a user.
    All fields are optional - only provided fields will be updated.
    """
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    password: Optional[str] = Field(default=None, min_length=1)  # Re-hashed when present
    avatar: Optional[str] = None


class UserOut(BaseModel):
    """
    User information returned to clients.
    Never carries the password hash.
    """
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: str
    avatar: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            user_id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            avatar=user.avatar,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class RegisterOut(BaseModel):
    user_id: str


class LoginOut(BaseModel):
    """
    Response model for successful login.
    Session id plus the token pair bound to it.
    """
    user_id: str
    session_id: str
    access_token: str
    refresh_token: str


class TokenPairOut(BaseModel):
    access_token: str
    refresh_token: str


class PageMeta(BaseModel):
    limit: int
    offset: int
    page: int
    total: int


class UserListOut(BaseModel):
    """Paginated user list."""
    meta: PageMeta
    users: List[UserOut]
