"""
Principal resolution for API requests.

The resolved principal is the only source of the caller's user id. Request
bodies and paths are never consulted for identity.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from utils.exceptions import UnauthorizedError

DEV_HEADER = "x-user-id"


class Principal(BaseModel):
    """The authenticated caller of one request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    source: str = "token"


def get_header(event: Dict[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in (event.get("headers") or {}).items():
        if str(key).lower() == wanted:
            return value
    return None


def _claim_sources(event: Dict[str, Any]):
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    # HTTP API JWT authorizer
    yield ((authorizer.get("jwt") or {}).get("claims")) or {}
    # HTTP API Lambda authorizer (simple responses put context under "lambda")
    yield authorizer.get("lambda") or {}
    # REST API Cognito authorizer
    yield authorizer.get("claims") or {}


def _verified_email(claims: Dict[str, Any]) -> Optional[str]:
    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        return None
    verified = claims.get("email_verified")
    if verified is not None and str(verified).lower() == "false":
        return None
    return email.strip()


def resolve_principal(event: Dict[str, Any], allow_dev_header: bool) -> Principal:
    """
    Resolve the calling principal.

    Order: a verified token's `sub` claim, then the `x-user-id` header when
    the deployment allows it.

    Raises:
        UnauthorizedError: if neither source yields an identity
    """
    for claims in _claim_sources(event):
        sub = claims.get("sub")
        if sub:
            return Principal(user_id=str(sub), email=_verified_email(claims))

    if allow_dev_header:
        dev_user = get_header(event, DEV_HEADER)
        if dev_user and str(dev_user).strip():
            return Principal(user_id=str(dev_user).strip(), source="dev-header")

    raise UnauthorizedError("Unauthorized")
