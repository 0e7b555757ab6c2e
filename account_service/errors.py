"""API error hierarchy.

Every failure that reaches a client is an ``ApiError``: a status code, a
human-readable message and an optional list of structured details. Handlers
in ``account_service.main`` turn them into the JSON error envelope.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Base error carrying an HTTP status, message and details."""

    default_status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status_code
        self.errors = list(errors) if errors else []
        self.data = None
        self.success = False
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the outward error envelope."""
        return {
            "statusCode": self.status_code,
            "data": self.data,
            "message": self.message,
            "success": self.success,
            "errors": self.errors,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"


class BadRequestError(ApiError):
    """Malformed or missing input."""

    default_status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    """Identity not proven, or token invalid, stale or replayed."""

    default_status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    default_status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    default_status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    """Collaborator or token-signing failure."""

    default_status_code = 500
    default_message = "Internal server error"
