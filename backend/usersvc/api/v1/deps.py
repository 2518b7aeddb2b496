from fastapi import Depends, Header, Request

from usersvc.core.errors import PermissionDenied, Unauthenticated
from usersvc.core.security import AccessClaims
from usersvc.services.accounts import AccountService
from usersvc.services.credentials import ROLE_ADMIN

ACCESS_TOKEN_COOKIE = "accessToken"


def get_account_service(request: Request) -> AccountService:
    """
    FastAPI dependency returning the process-wide AccountService.

    The service is built once at startup and kept on app.state, so tests can
    swap it for one wired to in-memory stores.
    """
    return request.app.state.accounts


def bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def request_access_token(request: Request, authorization: str | None = Header(default=None)) -> str | None:
    # 1) Authorization: Bearer xxx, 2) HttpOnly cookie set by login
    return bearer_token(authorization) or request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_claims(
    token: str | None = Depends(request_access_token),
    accounts: AccountService = Depends(get_account_service),
) -> AccessClaims:
    """
    FastAPI dependency resolving the caller's access token.

    The token must verify AND the session it carries must still be live, so a
    logged-out token stops working before it expires.

    Raises:
        Unauthenticated (401): No bearer token (AUTH_REQUIRED)
        InvalidToken (401): Bad, expired or tampered token (AUTH_INVALID_TOKEN)
        SessionExpired (401): The bound session is gone (AUTH_SESSION_EXPIRED)
    """
    if not token:
        raise Unauthenticated()
    return await accounts.authenticate(token)


async def require_admin(claims: AccessClaims = Depends(get_current_claims)) -> AccessClaims:
    """
    FastAPI dependency to ensure the caller is an administrator.

    Raises:
        PermissionDenied (403): If the caller is not an admin (FORBIDDEN_ADMIN_ONLY)
    """
    if claims.role != ROLE_ADMIN:
        raise PermissionDenied("Admin only", code="FORBIDDEN_ADMIN_ONLY")
    return claims
