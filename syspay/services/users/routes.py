"""HTTP routes for accounts and login sessions."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response

from syspay.common.config import settings
from syspay.common.responses import ApiListResponse, ApiResponse
from syspay.services.auth.access import USER_ROLE
from syspay.services.auth.dependencies import (
    bind_principal,
    get_auth_service,
    get_current_session,
    session_token_from,
)
from syspay.services.auth.models import AuthSession
from syspay.services.auth.schemas import (
    AuthResponse,
    CreateUserRequest,
    DeleteUserRequest,
    ListUsersQuery,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UpdateUserRequest,
    UserResponse,
    UserWithSessionResponse,
)
from syspay.services.auth.service import AuthService

router = APIRouter(prefix="/users", tags=["users"])


def _client(request: Request) -> tuple[str | None, str | None]:
    host = request.client.host if request.client else None
    return host, request.headers.get("user-agent")


def _set_session_cookie(response: Response, session: AuthSession) -> None:
    expires_at = session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    max_age = max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        path="/",
    )


def _auth_payload(session: AuthSession) -> AuthResponse:
    return AuthResponse(token=session.token, user=UserResponse.model_validate(session.user))


@router.post("/register", status_code=201, response_model=ApiResponse[AuthResponse])
def register(
    req: SignUpRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    """Open a `user` account and sign it in."""

    ip_address, user_agent = _client(request)
    session = auth.sign_up(req, ip_address, user_agent)
    _set_session_cookie(response, session)
    return ApiResponse[AuthResponse].success("user registered successfully", _auth_payload(session))


@router.post("/create-client", status_code=201, response_model=ApiResponse[UserResponse])
def create_client(
    req: CreateUserRequest,
    role: Literal["user", "admin"] = Query(default=USER_ROLE),
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    principal_id = bind_principal(session)
    user = auth.create_user(principal_id, req, role)
    return ApiResponse[UserResponse].success("client created successfully", UserResponse.model_validate(user))


@router.post("/login", response_model=ApiResponse[AuthResponse])
def login(
    req: SignInRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    ip_address, user_agent = _client(request)
    session = auth.sign_in(req, ip_address, user_agent)
    _set_session_cookie(response, session)
    return ApiResponse[AuthResponse].success("login successful", _auth_payload(session))


@router.post("/logout", response_model=ApiResponse[None])
def logout(request: Request, response: Response, auth: AuthService = Depends(get_auth_service)):
    token = session_token_from(request)
    if token:
        auth.sign_out(token)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return ApiResponse[None].success("logout successful")


@router.get("", response_model=ApiListResponse[UserResponse])
def list_users(
    search_value: str | None = Query(default=None, alias="searchValue"),
    search_field: Literal["name", "email", "document", "phoneNumber"] | None = Query(
        default=None, alias="searchField"
    ),
    search_operator: Literal["contains", "startsWith", "endsWith", "equals"] = Query(
        default="contains", alias="searchOperator"
    ),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: Literal["name", "email", "createdAt", "updatedAt"] | None = Query(default=None, alias="sortBy"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc", alias="sortDirection"),
    filter_field: Literal["email", "banned", "emailVerified", "role"] | None = Query(
        default=None, alias="filterField"
    ),
    filter_value: str | None = Query(default=None, alias="filterValue"),
    filter_operator: Literal["contains", "lt", "eq", "ne", "lte", "gt", "gte"] = Query(
        default="eq", alias="filterOperator"
    ),
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    """Admin-only listing."""

    principal_id = bind_principal(session)
    query = ListUsersQuery(
        search_value=search_value,
        search_field=search_field,
        search_operator=search_operator,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_direction=sort_direction,
        filter_field=filter_field,
        filter_value=filter_value,
        filter_operator=filter_operator,
    )
    rows, total = auth.list_users(principal_id, query)
    users = [UserResponse.model_validate(user) for user in rows]
    return ApiListResponse[UserResponse].success("users retrieved successfully", users, total=total)


@router.get("/me", response_model=ApiResponse[UserWithSessionResponse])
def me(session: AuthSession = Depends(get_current_session)):
    bind_principal(session)
    payload = UserWithSessionResponse(
        user=UserResponse.model_validate(session.user), session=SessionResponse.model_validate(session)
    )
    return ApiResponse[UserWithSessionResponse].success("user retrieved successfully", payload)


@router.patch("", response_model=ApiResponse[UserResponse])
def update_me(
    req: UpdateUserRequest,
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    principal_id = bind_principal(session)
    user = auth.update_user(principal_id, req)
    return ApiResponse[UserResponse].success("user updated successfully", UserResponse.model_validate(user))


@router.delete("", response_model=ApiResponse[None])
def delete_me(
    req: DeleteUserRequest,
    response: Response,
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    """Delete the caller's own account after password confirmation."""

    principal_id = bind_principal(session)
    auth.delete_user(principal_id, req.password)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return ApiResponse[None].success("user deleted successfully")
