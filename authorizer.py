"""
JWT Authorization Lambda for the HTTP API.

Validates the Cognito token on protected routes and hands the caller's `sub`
(and verified email, when present) to the API function through the authorizer
context. API Gateway caches the result per Authorization header.
"""

from typing import Any, Dict

from services.cognito_auth import cognito_auth
from utils.logging import log_error, setup_logger

logger = setup_logger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP API Gateway Lambda Authorizer (simple response format).

    Args:
        event: API Gateway authorizer event
        context: Lambda context object

    Returns:
        {"isAuthorized": bool} plus the identity context when authorized
    """
    logger.info(
        "Authorization request received",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "method": (event.get("requestContext") or {}).get("http", {}).get("method"),
            "path": event.get("rawPath"),
        },
    )

    try:
        user_info = cognito_auth.get_user_from_request(event)
    except Exception as e:
        log_error(logger, e, {"event_path": event.get("rawPath")})
        return {"isAuthorized": False}

    if not user_info or not user_info.get("sub"):
        logger.warning("Authorization failed: no valid Cognito identity in token")
        return {"isAuthorized": False}

    auth_context = {"sub": str(user_info["sub"])}
    if user_info.get("email"):
        auth_context["email"] = str(user_info["email"])
        auth_context["email_verified"] = str(
            user_info.get("email_verified", False)
        ).lower()

    logger.info("User authorized successfully", extra={"user_id": auth_context["sub"]})
    return {"isAuthorized": True, "context": auth_context}
