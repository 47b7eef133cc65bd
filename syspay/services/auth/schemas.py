"""Request/response schemas for user and session endpoints."""

from typing import Literal

from pydantic import EmailStr, Field, HttpUrl

from syspay.common.schemas import CamelModel, UtcDateTime

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class SignUpRequest(CamelModel):
    """Payload accepted by `POST /users/register`."""

    name: str = Field(min_length=3, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    phone_number: str = Field(pattern=PHONE_PATTERN)
    document: str = Field(min_length=1)
    image: HttpUrl | None = None
    remember_me: bool = False


class CreateUserRequest(CamelModel):
    """Admin-side account creation; same fields as sign-up without session options."""

    name: str = Field(min_length=3, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    phone_number: str = Field(pattern=PHONE_PATTERN)
    document: str = Field(min_length=1)
    image: HttpUrl | None = None


class SignInRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    remember_me: bool = False


class UpdateUserRequest(CamelModel):
    """Partial profile update; omitted fields stay untouched."""

    name: str | None = Field(default=None, min_length=3, max_length=255)
    image: HttpUrl | None = None
    document: str | None = Field(default=None, min_length=1)
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)


class DeleteUserRequest(CamelModel):
    password: str = Field(min_length=6)


class ListUsersQuery(CamelModel):
    search_value: str | None = None
    search_field: Literal["name", "email", "document", "phoneNumber"] | None = None
    search_operator: Literal["contains", "startsWith", "endsWith", "equals"] = "contains"
    limit: int = Field(default=10, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    sort_by: Literal["name", "email", "createdAt", "updatedAt"] | None = None
    sort_direction: Literal["asc", "desc"] = "desc"
    filter_field: Literal["email", "banned", "emailVerified", "role"] | None = None
    filter_value: str | None = None
    filter_operator: Literal["contains", "lt", "eq", "ne", "lte", "gt", "gte"] = "eq"


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    email_verified: bool = False
    image: str | None = None
    role: str
    banned: bool = False
    document: str | None = None
    phone_number: str | None = None
    created_at: UtcDateTime | None = None
    updated_at: UtcDateTime | None = None


class SessionResponse(CamelModel):
    id: str
    user_id: str
    expires_at: UtcDateTime
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: UtcDateTime | None = None


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class UserWithSessionResponse(CamelModel):
    user: UserResponse
    session: SessionResponse | None = None
