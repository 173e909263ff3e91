"""
Exceptions that map onto HTTP error responses.

Handlers raise these instead of building error responses by hand; the
`lambda_handler` decorator turns them into JSON bodies with CORS headers.
"""

from typing import Any, Dict, List, Optional


class ApiError(Exception):
    """Base class for errors that carry an HTTP status and a client-safe message."""

    status_code = 500
    error_code: Optional[str] = None

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ApiError):
    status_code = 400
    error_code = "BAD_REQUEST"


class ValidationFailedError(ApiError):
    """Field-level validation failure; `errors` is a list of {field, message}."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors


class UnauthorizedError(ApiError):
    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class MethodNotAllowedError(ApiError):
    status_code = 405
    error_code = "METHOD_NOT_ALLOWED"

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class ConfigurationError(ApiError):
    """Deployment is missing something it needs; the message is diagnostic."""

    status_code = 500
    error_code = "CONFIGURATION_ERROR"
