# usersvc/core/errors.py
"""
Error kinds raised by the account core.

Every kind carries a stable machine-readable code plus the status it maps to
on each transport, so the HTTP and RPC front doors translate errors through
the same table instead of keeping their own.
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for all errors the core hands back to a transport."""

    http_status: int = 500
    rpc_code: str = "INTERNAL"
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_detail(self, debug: bool = False) -> dict:
        """
        Build the error body shared by both transports.

        The cause chain is only expanded when debug is enabled.
        """
        detail = {"code": self.code, "message": self.message}
        if debug:
            causes = []
            cause = self.__cause__
            while cause is not None:
                causes.append(f"{type(cause).__name__}: {cause}")
                cause = cause.__cause__
            if causes:
                detail["debug"] = causes
        return detail


class ValidationError(ServiceError):
    http_status = 400
    rpc_code = "INVALID_ARGUMENT"
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class HashingError(ServiceError):
    code = "HASHING_ERROR"
    default_message = "Could not process credentials"


class ConfigurationError(ServiceError):
    code = "CONFIGURATION_ERROR"
    default_message = "Service is misconfigured"


class AuthenticationError(ServiceError):
    http_status = 401
    rpc_code = "UNAUTHENTICATED"
    code = "AUTH_FAILED"
    default_message = "Authentication failed"


class InvalidCredentials(AuthenticationError):
    # Same message whether the email or the password was wrong
    code = "AUTH_INVALID_CREDENTIALS"
    default_message = "Incorrect email or password"


class Unauthenticated(ServiceError):
    http_status = 401
    rpc_code = "UNAUTHENTICATED"
    code = "AUTH_REQUIRED"
    default_message = "Authentication required"


class SessionExpired(Unauthenticated):
    code = "AUTH_SESSION_EXPIRED"
    default_message = "Session has expired"


class InvalidToken(Unauthenticated):
    code = "AUTH_INVALID_TOKEN"
    default_message = "Invalid or expired token"


class PermissionDenied(ServiceError):
    http_status = 403
    rpc_code = "PERMISSION_DENIED"
    code = "FORBIDDEN"
    default_message = "Not allowed"


class NotFound(ServiceError):
    http_status = 404
    rpc_code = "NOT_FOUND"
    code = "NOT_FOUND"
    default_message = "Not found"


class SessionNotFound(NotFound):
    code = "SESSION_NOT_FOUND"
    default_message = "Session not found"


class EmailExists(ServiceError):
    http_status = 409
    rpc_code = "ALREADY_EXISTS"
    code = "EMAIL_EXISTS"
    default_message = "Email already registered"


class StoreError(ServiceError):
    """Transport or engine failure in one of the backing stores."""

    code = "STORE_ERROR"
    default_message = "Storage backend failure"


class DuplicateKey(StoreError):
    """Uniqueness constraint violation reported by the durable store."""

    http_status = 409
    rpc_code = "ALREADY_EXISTS"
    code = "DUPLICATE_KEY"
    default_message = "Duplicate key"


class SessionStoreError(StoreError):
    code = "SESSION_STORE_ERROR"
    default_message = "Session store unavailable"
