"""
Decorators shared by the API handlers.

`lambda_handler` wraps an entry point: it binds request metadata to the log
context, logs the request and response, and turns exceptions into JSON error
responses. The other decorators prepare the event for a single route.
"""

import base64
import binascii
import json
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

from .exceptions import ApiError, BadRequestError, ValidationFailedError
from .identity import resolve_principal
from .logging import (bind_request_context, clear_request_context, log_error,
                      log_lambda_event, log_lambda_response, setup_logger)
from .responses import (HTTPStatus, error_response,
                        validation_error_response)
from .settings import get_settings

Handler = Callable[[Dict[str, Any], Any], Dict[str, Any]]


def _response_for(logger, error: Exception, event: Dict[str, Any]) -> Dict[str, Any]:
    """Map an exception raised by a handler onto the error envelope."""
    if isinstance(error, ValidationFailedError):
        return validation_error_response(error.errors)

    if isinstance(error, ApiError):
        if error.status_code >= 500:
            logger.error(error.message, extra={"error_code": error.error_code})
        return error_response(error.message, error.status_code, error.error_code)

    http = (event.get("requestContext") or {}).get("http") or {}
    log_error(
        logger,
        error,
        {
            "event_path": event.get("rawPath") or event.get("path"),
            "event_method": http.get("method") or event.get("httpMethod"),
        },
    )
    return error_response("Server error", HTTPStatus.INTERNAL_SERVER_ERROR)


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable[[Handler], Handler]:
    """
    Wrap a Lambda entry point.

    - request id and function name are bound to every log line
    - `ValidationFailedError` becomes 400 with an `errors` array
    - other `ApiError`s become their status with `{"ok": false, "error": ...}`
    - anything else is logged with its traceback and becomes a generic 500

    Args:
        logger_name: Logger name (defaults to the handler's module)
        log_event: Whether to log incoming requests
        log_response: Whether to log status and timing of responses
        structured_logging: Whether to use JSON log lines
    """

    def decorator(func: Handler) -> Handler:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )
            started = time.perf_counter()
            bind_request_context(
                request_id=getattr(context, "aws_request_id", "unknown"),
                function_name=getattr(context, "function_name", "unknown"),
            )

            try:
                if log_event:
                    log_lambda_event(logger, event, context)

                try:
                    response = func(event, context)
                except Exception as e:
                    response = _response_for(logger, e, event)

                if not isinstance(response, dict) or "statusCode" not in response:
                    logger.warning("Handler returned invalid response format")
                    response = error_response(
                        "Server error", HTTPStatus.INTERNAL_SERVER_ERROR
                    )

                if log_response:
                    log_lambda_response(
                        logger, response, (time.perf_counter() - started) * 1000
                    )
                return response
            finally:
                clear_request_context()

        return wrapper

    return decorator


def require_auth(func: Handler) -> Handler:
    """
    Resolve the calling principal into `event["auth"]`.

    The principal comes from the authorizer claims on the request context, or
    from the `x-user-id` header when ALLOW_DEV_HEADER is enabled.

    Raises:
        UnauthorizedError: when no principal can be resolved
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        principal = resolve_principal(event, get_settings().allow_dev_header)
        bind_request_context(user_id=principal.user_id, auth_source=principal.source)
        event["auth"] = principal
        return func(event, context)

    return wrapper


def _raw_body(event: Dict[str, Any]) -> str:
    body = event.get("body")
    if not body:
        return ""
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise BadRequestError("Invalid JSON in request body")
    return body


def validate_json_body() -> Callable[[Handler], Handler]:
    """
    Parse the JSON request body into `event["json_body"]`.

    An empty body parses as {}. Anything that is not a JSON object is rejected
    with "Invalid JSON in request body".
    """

    def decorator(func: Handler) -> Handler:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            raw = _raw_body(event)
            try:
                body = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                body = None
            if not isinstance(body, dict):
                raise BadRequestError("Invalid JSON in request body")

            event["json_body"] = body
            return func(event, context)

        return wrapper

    return decorator


def extract_path_params(*param_names: str, message: Optional[str] = None) -> Callable:
    """
    Decorator that extracts required path parameters into `event["path_params"]`.

    Args:
        param_names: Names of path parameters to extract
        message: Error message used when a parameter is missing
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            path_params = event.get("pathParameters") or {}

            missing_params = [
                param
                for param in param_names
                if not str(path_params.get(param) or "").strip()
            ]
            if missing_params:
                raise BadRequestError(
                    message
                    or f"Missing path parameters: {', '.join(missing_params)}"
                )

            event["path_params"] = {
                param: str(path_params[param]).strip() for param in param_names
            }
            return func(event, context)

        return wrapper

    return decorator
