"""Domain error taxonomy.

Services raise these at the point of violation; the HTTP layer maps each
class to its status code and the uniform error envelope.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors that carry an HTTP status and optional details."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    """Malformed or missing fields, bad enum values, illegal transitions."""

    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidTransitionError(ValidationError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Invalid transition: {current} -> {requested}",
            errors=[
                {
                    "field": "status",
                    "message": f"cannot change status from {current} to {requested}",
                    "code": self.code,
                }
            ],
        )
        self.current = current
        self.requested = requested


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, message: str | None = None) -> None:
        super().__init__(message or f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    """Duplicate idempotency key or another unique-constraint clash."""

    status_code = 409
    code = "CONFLICT"


class PermissionDeniedError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
