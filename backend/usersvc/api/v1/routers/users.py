from fastapi import APIRouter, Depends, Query, Response, status

from usersvc.api.v1.deps import (
    ACCESS_TOKEN_COOKIE,
    get_account_service,
    get_current_claims,
    request_access_token,
    require_admin,
)
from usersvc.core.errors import PermissionDenied
from usersvc.core.security import AccessClaims
from usersvc.schemas.users import (
    LoginIn,
    LoginOut,
    PageMeta,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
    UserListOut,
    UserOut,
    UserUpdateIn,
)
from usersvc.services.accounts import AccountService, UserChanges
from usersvc.services.credentials import ROLE_ADMIN

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterIn,
    token: str | None = Depends(request_access_token),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Register a new user account.

    The email is case-folded and must be unique; the password is hashed before
    storage. No session is created, the client logs in afterwards.
    Anyone may create a "user" account; an "admin" account needs an admin's
    access token.

    Returns:
        dict: success flag and the created user (never the password)

    Error codes:
        - ROLE_INVALID (400): role is not "admin" or "user"
        - FORBIDDEN_ADMIN_ONLY (403): admin role requested without an admin token
        - EMAIL_EXISTS (409): email already registered
    """
    if body.requests_admin():
        if not token:
            raise PermissionDenied("Only an admin can create admin accounts", code="FORBIDDEN_ADMIN_ONLY")
        await require_admin(await accounts.authenticate(token))
    user = await accounts.register(body.to_candidate())
    return {"success": True, "data": UserOut.from_user(user)}


@router.post("/login", status_code=status.HTTP_201_CREATED)
async def login(body: LoginIn, response: Response, accounts: AccountService = Depends(get_account_service)):
    """
    Authenticate, open a session and issue its token pair.

    The access token is also set as an HttpOnly cookie for browser clients.

    Error codes:
        - AUTH_INVALID_CREDENTIALS (401): unknown email or wrong password (indistinguishable)
    """
    user = await accounts.login(body.email, body.password)
    session_id, tokens = await accounts.start_session(user)
    response.set_cookie(ACCESS_TOKEN_COOKIE, tokens.access_token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": LoginOut(
        user_id=str(user.id),
        session_id=session_id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )}


@router.post("/refresh")
async def refresh(body: RefreshIn, accounts: AccountService = Depends(get_account_service)):
    """
    Exchange a refresh token for a new token pair on the same session.

    Error codes:
        - AUTH_INVALID_TOKEN (401): bad, expired or non-refresh token
        - AUTH_SESSION_EXPIRED (401): the session was logged out or expired
    """
    tokens = await accounts.refresh(body.refresh_token)
    return {"success": True, "data": TokenPairOut(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )}


@router.post("/logout")
async def logout(
    response: Response,
    claims: AccessClaims = Depends(get_current_claims),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Delete the caller's session and clear the cookie.

    Every token bound to the session stops working immediately, even before
    it expires.
    """
    await accounts.logout(claims.session_id)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return {"success": True}


@router.get("/me")
async def me(
    claims: AccessClaims = Depends(get_current_claims),
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.get_me(claims.session_id)
    return {"success": True, "data": UserOut.from_user(user)}


@router.get("")
async def list_users(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    claims: AccessClaims = Depends(get_current_claims),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Paginated user list, newest first.

    Query params:
      - limit: page size (1..100)
      - offset: rows to skip
    """
    page = await accounts.find_all(limit=limit, offset=offset)
    return {"success": True, "data": UserListOut(
        meta=PageMeta(limit=page.limit, offset=page.offset, page=page.page, total=page.total),
        users=[UserOut.from_user(u) for u in page.items],
    )}


@router.get("/{user_id}")
async def find_by_id(
    user_id: str,
    claims: AccessClaims = Depends(get_current_claims),
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.cached_find_by_id(user_id)
    return {"success": True, "data": UserOut.from_user(user)}


@router.put("/{user_id}")
async def update_by_id(
    user_id: str,
    body: UserUpdateIn,
    claims: AccessClaims = Depends(get_current_claims),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Update a user's profile or password (partial update).

    Users may only update themselves; admins may update anyone.

    Error codes:
        - FORBIDDEN (403): updating another user without admin role
        - USER_NOT_FOUND (404)
    """
    if claims.role != ROLE_ADMIN and claims.user_id != user_id:
        raise PermissionDenied("Cannot update another user")
    user = await accounts.update_by_id(user_id, UserChanges(
        first_name=body.first_name,
        last_name=body.last_name,
        avatar=body.avatar,
        password=body.password,
    ))
    return {"success": True, "data": UserOut.from_user(user)}


@router.delete("/{user_id}")
async def delete_by_id(
    user_id: str,
    admin: AccessClaims = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Delete a user (admin only).

    Error codes:
        - FORBIDDEN_ADMIN_ONLY (403)
        - USER_NOT_FOUND (404): unknown or already deleted id
    """
    await accounts.delete_by_id(user_id)
    return {"success": True, "data": {"ok": True}}
