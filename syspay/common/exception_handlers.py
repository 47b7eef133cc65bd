"""Translate domain, validation and storage errors into the error envelope.

Storage-layer errors are inspected here, at the HTTP boundary, rather than
inside business logic.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import DataError, IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from syspay.common.db import (
    FOREIGN_KEY_VIOLATION,
    NOT_NULL_VIOLATION,
    UNIQUE_VIOLATION,
    classify_integrity_error,
)
from syspay.common.errors import AppError
from syspay.common.logging import logger, user_id_ctx
from syspay.common.responses import ApiErrorResponse, ErrorDetail

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def bind_request_principal(request: Request) -> None:
    """Expose the authenticated user id to log lines written by these handlers."""

    user_id = getattr(request.state, "user_id", None)
    if user_id:
        user_id_ctx.set(user_id)


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the uniform error envelope and log the outcome."""

    bind_request_principal(request)
    if status_code >= 500:
        logger.error("%s %s - Status: %s - %s", request.method, request.url.path, status_code, message)
    else:
        logger.warning("%s %s - Status: %s - %s", request.method, request.url.path, status_code, message)
    body = ApiErrorResponse(
        message=message,
        status_code=status_code,
        path=request.url.path,
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


def _field_from_loc(loc) -> str | None:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or None


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    errors = [ErrorDetail(**error) for error in exc.errors] if exc.errors else None
    return error_response(request, exc.status_code, exc.message, errors)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """One error entry per offending field."""

    errors = [
        ErrorDetail(
            field=_field_from_loc(error.get("loc", ())),
            message=error.get("msg", "invalid value"),
            code=error.get("type"),
        )
        for error in exc.errors()
    ]
    return error_response(request, 400, "validation error", errors)


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    kind, column = classify_integrity_error(exc)
    field = to_camel(column) if column else None
    if kind == UNIQUE_VIOLATION:
        label = field or "value"
        return error_response(
            request,
            409,
            "unique constraint violation",
            [ErrorDetail(field=field, message=f"{label} already in use", code="UNIQUE_CONSTRAINT_VIOLATION")],
        )
    if kind == FOREIGN_KEY_VIOLATION:
        return error_response(
            request,
            400,
            "invalid reference",
            [
                ErrorDetail(
                    field=field,
                    message="referenced record does not exist or is still in use",
                    code="FOREIGN_KEY_VIOLATION",
                )
            ],
        )
    if kind == NOT_NULL_VIOLATION:
        return error_response(
            request,
            400,
            "missing required value",
            [ErrorDetail(field=field, message="value is required", code="NOT_NULL_VIOLATION")],
        )
    bind_request_principal(request)
    logger.error("unmapped integrity error: %s", exc, exc_info=exc)
    return error_response(request, 500, "error processing database operation")


async def handle_data_error(request: Request, exc: DataError) -> JSONResponse:
    logger.warning("data error: %s", exc.orig)
    return error_response(
        request,
        400,
        "invalid value",
        [ErrorDetail(message="value too long or out of range for column", code="DATA_ERROR")],
    )


async def handle_no_result(request: Request, exc: NoResultFound) -> JSONResponse:
    return error_response(request, 404, "record not found")


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Full detail goes to the log only.
    bind_request_principal(request)
    logger.error("unhandled database error: %s", exc, exc_info=exc)
    return error_response(request, 500, "internal server error")


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "request failed"
    return error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    bind_request_principal(request)
    logger.error("unhandled error: %s", exc, exc_info=exc)
    return error_response(request, 500, "internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler; Starlette resolves the most specific class first."""

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(DataError, handle_data_error)
    app.add_exception_handler(NoResultFound, handle_no_result)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
