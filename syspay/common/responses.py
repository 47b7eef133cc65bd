"""Uniform success/error envelopes returned by every endpoint."""

from datetime import datetime, timezone
from typing import Generic, Literal, TypeVar

from pydantic import Field

from syspay.common.schemas import CamelModel

T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """Single-object envelope: `{status, message, data}`."""

    status: Literal["success", "error"] = "success"
    message: str
    data: T | None = None

    @classmethod
    def success(cls, message: str, data: T | None = None) -> "ApiResponse[T]":
        return cls(status="success", message=message, data=data)


class ApiListResponse(CamelModel, Generic[T]):
    """List envelope: `{status, message, count, total, data: [...]}`.

    `count` is the size of this page; `total` counts every match when the
    endpoint paginates server-side.
    """

    status: Literal["success", "error"] = "success"
    message: str
    count: int = 0
    total: int | None = None
    data: list[T] = Field(default_factory=list)

    @classmethod
    def success(cls, message: str, data: list[T], total: int | None = None) -> "ApiListResponse[T]":
        return cls(status="success", message=message, count=len(data), total=total, data=data)


class ErrorDetail(CamelModel):
    """One offending field (or a general problem when `field` is absent)."""

    field: str | None = None
    message: str
    code: str | None = None


class ApiErrorResponse(CamelModel):
    status: Literal["error"] = "error"
    message: str
    status_code: int
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    path: str | None = None
    errors: list[ErrorDetail] | None = None
