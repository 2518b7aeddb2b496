# usersvc/api/rpc.py
"""
RPC front door for the account service.

Unary methods are exposed as POST /rpc/UserService/<Method> with JSON request
and response messages. Calls that act on a session read its id from the
`session-id` request metadata header instead of a token. Errors use the RPC
status vocabulary: {"code": "UNAUTHENTICATED", "message": "..."}.
"""
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from usersvc.api.v1.deps import get_account_service
from usersvc.core.errors import PermissionDenied, ServiceError, Unauthenticated
from usersvc.schemas.users import Email, LoginIn, RefreshIn, RegisterIn, TokenPairOut, UserOut
from usersvc.services.accounts import AccountService
from usersvc.services.credentials import ROLE_ADMIN

RPC_PREFIX = "/rpc/UserService"
SESSION_METADATA_KEY = "session-id"

router = APIRouter(prefix=RPC_PREFIX, tags=["rpc"])


class FindByEmailRequest(BaseModel):
    email: Email


class FindByIDRequest(BaseModel):
    uuid: str = Field(min_length=1)


class UserResponse(BaseModel):
    user: UserOut


class LoginResponse(BaseModel):
    user: UserOut
    session_id: str


def rpc_error_response(exc: ServiceError, debug: bool = False) -> JSONResponse:
    """Render a ServiceError as an RPC status body."""
    body = exc.to_detail(debug)
    body["reason"] = body["code"]
    body["code"] = exc.rpc_code
    return JSONResponse(status_code=exc.http_status, content=body)


def session_from_metadata(session_id: str | None = Header(default=None, alias=SESSION_METADATA_KEY)) -> str:
    if not session_id or not session_id.strip():
        raise Unauthenticated("Missing session-id metadata")
    return session_id.strip()


@router.post("/Register", response_model=UserResponse)
async def register(
    body: RegisterIn,
    session_id: str | None = Header(default=None, alias=SESSION_METADATA_KEY),
    accounts: AccountService = Depends(get_account_service),
):
    """Create an account; the admin role needs the session-id metadata of a live admin session."""
    if body.requests_admin():
        caller = await accounts.get_me(session_id.strip()) if session_id and session_id.strip() else None
        if caller is None or caller.role != ROLE_ADMIN:
            raise PermissionDenied("Only an admin can create admin accounts", code="FORBIDDEN_ADMIN_ONLY")
    user = await accounts.register(body.to_candidate())
    return UserResponse(user=UserOut.from_user(user))


@router.post("/Login", response_model=LoginResponse)
async def login(body: LoginIn, accounts: AccountService = Depends(get_account_service)):
    """Check credentials and open a session; the client sends its id as metadata afterwards."""
    user = await accounts.login(body.email, body.password)
    session_id, _ = await accounts.start_session(user)
    return LoginResponse(user=UserOut.from_user(user), session_id=session_id)


@router.post("/FindByEmail", response_model=UserResponse)
async def find_by_email(body: FindByEmailRequest, accounts: AccountService = Depends(get_account_service)):
    user = await accounts.find_by_email(body.email)
    return UserResponse(user=UserOut.from_user(user))


@router.post("/FindByID", response_model=UserResponse)
async def find_by_id(body: FindByIDRequest, accounts: AccountService = Depends(get_account_service)):
    user = await accounts.cached_find_by_id(body.uuid)
    return UserResponse(user=UserOut.from_user(user))


@router.post("/GetMe", response_model=UserResponse)
async def get_me(
    session_id: str = Depends(session_from_metadata),
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.get_me(session_id)
    return UserResponse(user=UserOut.from_user(user))


@router.post("/Logout")
async def logout(
    session_id: str = Depends(session_from_metadata),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.logout(session_id)
    return {}


@router.post("/RefreshToken", response_model=TokenPairOut)
async def refresh_token(body: RefreshIn, accounts: AccountService = Depends(get_account_service)):
    tokens = await accounts.refresh(body.refresh_token)
    return TokenPairOut(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
