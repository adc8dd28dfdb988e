"""
Error taxonomy shared by services and blueprints.

Every failure path raises exactly one of these; api.errors renders them into
the uniform failure envelope.
"""
from __future__ import annotations

from typing import Any, Optional


class ApiError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized access"


class Forbidden(ApiError):
    status_code = 403
    default_message = "You are not allowed to modify this resource"


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    status_code = 500
    default_message = "An unexpected error occurred"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid."""
