"""
Cognito token verification for the Lambda authorizer.
"""

import logging
from typing import Any, Dict, Optional

import jwt
import requests
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWTError

from services.parameter_store import config

logger = logging.getLogger(__name__)

USERINFO_TIMEOUT_SECONDS = 10


class CognitoAuth:
    def __init__(self, cognito_config: Optional[Dict[str, Optional[str]]] = None):
        self._config = cognito_config
        self._jwks_client: Optional[jwt.PyJWKClient] = None

    @property
    def settings(self) -> Dict[str, Optional[str]]:
        if self._config is None:
            self._config = config.load_cognito_config()
        return self._config

    @property
    def issuer(self) -> str:
        return (
            f"https://cognito-idp.{self.settings['region']}.amazonaws.com/"
            f"{self.settings['user_pool_id']}"
        )

    def jwks_client(self) -> jwt.PyJWKClient:
        if self._jwks_client is None:
            self._jwks_client = jwt.PyJWKClient(f"{self.issuer}/.well-known/jwks.json")
        return self._jwks_client

    def validate_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Validate a Cognito token and return the caller's identity claims.

        Args:
            token: The bearer token from the Authorization header

        Returns:
            Dict with sub, email and email_verified if valid, None otherwise
        """
        if self.settings.get("user_pool_id"):
            return self._validate_jwt(token)

        if self.settings.get("domain"):
            logger.info("Using userInfo token verification (no user pool configured)")
            return self._validate_via_userinfo(token)

        logger.error("Cognito is not configured; rejecting token")
        return None

    def _validate_jwt(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify signature, expiry, issuer, token use and client against the pool JWKS."""
        try:
            signing_key = self.jwks_client().get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={"verify_aud": False},
            )
        except ExpiredSignatureError:
            logger.warning("JWT token has expired")
            return None
        except InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            return None
        except PyJWTError as e:
            logger.error(f"Error validating JWT token: {str(e)}")
            return None

        token_use = payload.get("token_use")
        if token_use not in ("id", "access"):
            logger.warning("Rejected token with unexpected token_use %s", token_use)
            return None

        client_id = self.settings.get("app_client_id")
        token_client = payload.get("aud") if token_use == "id" else payload.get("client_id")
        if client_id and token_client != client_id:
            logger.warning("Rejected token issued for another app client")
            return None

        return {
            "sub": payload.get("sub"),
            "email": payload.get("email"),
            "email_verified": payload.get("email_verified"),
            "token_use": token_use,
        }

    def _validate_via_userinfo(self, token: str) -> Optional[Dict[str, Any]]:
        """Ask the hosted UI's userInfo endpoint who the access token belongs to."""
        try:
            response = requests.get(
                f"https://{self.settings['domain']}/oauth2/userInfo",
                headers={"Authorization": f"Bearer {token}"},
                timeout=USERINFO_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"Error calling Cognito userInfo: {str(e)}")
            return None

        if response.status_code != 200:
            logger.warning(f"Token validation failed via userInfo: {response.status_code}")
            return None

        user_data = response.json()
        return {
            "sub": user_data.get("sub"),
            "email": user_data.get("email"),
            "email_verified": user_data.get("email_verified"),
            "token_use": "access",
        }

    @staticmethod
    def extract_token_from_header(authorization_header: Optional[str]) -> Optional[str]:
        if not authorization_header:
            return None

        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        return parts[1]

    def get_user_from_request(self, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Extract and validate the bearer token of an authorizer event."""
        headers = event.get("headers") or {}
        authorization = next(
            (value for key, value in headers.items() if key.lower() == "authorization"),
            None,
        )

        token = self.extract_token_from_header(authorization)
        if not token:
            logger.debug("Missing or malformed Authorization header")
            return None

        return self.validate_token(token)


# Global instance; Cognito settings load on first use.
cognito_auth = CognitoAuth()
