"""
Utils package for shared utilities and cross-cutting concerns.

This package contains decorators, logging utilities, response formatters,
routing, settings and principal resolution used across the application.
"""

from .decorators import (extract_path_params, lambda_handler, require_auth,
                         validate_json_body)
from .exceptions import (ApiError, BadRequestError, ConfigurationError,
                         MethodNotAllowedError, NotFoundError,
                         UnauthorizedError, ValidationFailedError)
from .identity import Principal, resolve_principal
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, error_response, success_response,
                        validation_error_response)
from .routing import Router

__all__ = [
    # Decorators
    "lambda_handler",
    "require_auth",
    "validate_json_body",
    "extract_path_params",
    # Errors
    "ApiError",
    "BadRequestError",
    "ConfigurationError",
    "MethodNotAllowedError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationFailedError",
    # Identity
    "Principal",
    "resolve_principal",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "validation_error_response",
    # Routing
    "Router",
]
