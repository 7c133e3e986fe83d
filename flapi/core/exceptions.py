"""Typed API errors raised by the service layer.

Blueprints never build error responses by hand for these: the global handler
registered in ``flapi.api.errors`` converts any ``ApiError`` into JSON.
"""
from __future__ import annotations
from typing import Optional


class ApiError(Exception):
    """Error with an HTTP status and a machine-readable code."""

    status = 500
    code = "E_INTERNAL"

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None, **details):
        self.message = message
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the JSON error body."""
        body = {"message": self.message, "code": self.code}
        body.update(self.details)
        return body


class ValidationError(ApiError):
    """Payload rejected by a validator.

    Attributes:
        errors: list of ``{"field", "rule", "message"}`` entries
    """

    status = 400
    code = "E_VALIDATION_ERROR"

    def __init__(self, errors: list[dict], message: str = "Validation failure"):
        self.errors = errors
        super().__init__(message, errors=errors)


class NotFoundError(ApiError):
    status = 404
    code = "E_ROW_NOT_FOUND"


class ConflictError(ApiError):
    status = 409
    code = "E_CONFLICT"


class AuthenticationError(ApiError):
    status = 401
    code = "E_UNAUTHORIZED"


class ExternalServiceError(ApiError):
    """A third-party platform call failed (transport error or HTTP >= 400)."""

    status = 502
    code = "E_EXTERNAL_SERVICE"

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")
