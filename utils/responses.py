"""
Standardized HTTP response utilities for Lambda functions.

Every body is a JSON object carrying an `ok` flag; every response carries
permissive CORS headers so the browser client can call the API directly.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union


class HTTPStatus(Enum):
    """HTTP status codes for API responses."""

    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVER_ERROR = 500


DEFAULT_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
ALLOWED_HEADERS = "Authorization,Content-Type,x-user-id"


def cors_headers(methods: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """CORS headers for a response; OPTIONS is always allowed."""
    allowed = list(methods or DEFAULT_METHODS)
    if "OPTIONS" not in allowed:
        allowed.append("OPTIONS")
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": ",".join(allowed),
    }


class APIJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for API responses that handles:
    - Decimal objects (from DynamoDB), integral values stay integers
    - datetime and date objects
    - sets (DynamoDB string sets)
    - Pydantic models
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if hasattr(obj, "model_dump"):
            return obj.model_dump()
        return super().default(obj)


def create_response(
    status_code: Union[int, HTTPStatus],
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    methods: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Create a Lambda proxy response.

    Args:
        status_code: HTTP status code
        body: Response body (JSON serialized); None means an empty body
        headers: Additional headers
        methods: Methods advertised in Access-Control-Allow-Methods

    Returns:
        Lambda HTTP response dictionary
    """
    if isinstance(status_code, HTTPStatus):
        status_code = status_code.value

    response_headers = {"Content-Type": "application/json"}
    response_headers.update(cors_headers(methods))
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": "" if body is None else json.dumps(body, cls=APIJSONEncoder),
    }


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: Union[int, HTTPStatus] = HTTPStatus.OK,
) -> Dict[str, Any]:
    """
    Create a success response; dict data is merged into the top-level body.

    Args:
        data: Response data
        message: Optional human-readable message
        status_code: HTTP status code

    Returns:
        Lambda HTTP response dictionary
    """
    body: Dict[str, Any] = {"ok": True}

    if message:
        body["message"] = message

    if data is not None:
        if isinstance(data, dict):
            body.update(data)
        else:
            body["data"] = data

    return create_response(status_code, body)


def error_response(
    message: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR,
    error_code: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create an error response of the form {"ok": false, "error": message}.

    Args:
        message: Client-safe error message
        status_code: HTTP status code
        error_code: Application-specific error code

    Returns:
        Lambda HTTP response dictionary
    """
    body: Dict[str, Any] = {"ok": False, "error": message}

    if error_code:
        body["error_code"] = error_code

    return create_response(status_code, body)


def validation_error_response(errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create a 400 response listing field errors as {field, message} objects."""
    return create_response(
        HTTPStatus.BAD_REQUEST,
        {"ok": False, "errors": errors},
    )


def preflight_response(methods: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Answer a CORS preflight with 204 and no body."""
    return create_response(HTTPStatus.NO_CONTENT, None, methods=methods)
