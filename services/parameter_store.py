"""
AWS Systems Manager Parameter Store service.

Configuration that is not a plain Lambda environment variable (the Cognito
user pool the authorizer trusts) lives under the `/jobcopilot` prefix.
Environment variables win, so local development only needs a `.env` file.
"""

import os
from functools import lru_cache
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

DEFAULT_PREFIX = "/jobcopilot"

_ssm_client = None


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def env_var_for(parameter_name: str) -> str:
    """`/jobcopilot/cognito/user-pool-id` -> `JOBCOPILOT_COGNITO_USER_POOL_ID`."""
    return parameter_name.replace("/", "_").replace("-", "_").strip("_").upper()


@lru_cache(maxsize=128)
def get_parameter(parameter_name: str, decrypt: bool = True) -> Optional[str]:
    """
    Get a parameter, preferring the matching environment variable.

    Args:
        parameter_name: Full parameter name, e.g. /jobcopilot/cognito/region
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Parameter value or None if not found
    """
    local_value = os.getenv(env_var_for(parameter_name))
    if local_value:
        logger.debug(f"Using local environment variable for {parameter_name}")
        return local_value

    try:
        response = get_ssm_client().get_parameter(
            Name=parameter_name, WithDecryption=decrypt
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ParameterNotFound":
            logger.warning(f"Parameter {parameter_name} not found in Parameter Store")
            return None
        logger.error(f"Error retrieving parameter {parameter_name}: {e}")
        raise

    logger.debug(f"Retrieved parameter {parameter_name} from Parameter Store")
    return response["Parameter"]["Value"]


class ParameterStoreConfig:
    """Prefixed, memoized access to configuration values."""

    def __init__(self, parameter_prefix: str = DEFAULT_PREFIX):
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self._config_cache: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._config_cache:
            return self._config_cache[key]

        value = get_parameter(f"{self.parameter_prefix}/{key}")
        if value is None:
            value = default

        self._config_cache[key] = value
        return value

    def get_required(self, key: str) -> str:
        """
        Raises:
            ValueError: If the parameter is not found
        """
        value = self.get(key)
        if value is None:
            raise ValueError(
                f"Required parameter {self.parameter_prefix}/{key} not found"
            )
        return value

    def load_cognito_config(self) -> Dict[str, Optional[str]]:
        """
        Cognito settings for token verification.

        `user_pool_id` enables JWKS verification; `domain` (the hosted UI
        domain) enables the userInfo fallback. Region defaults to the one
        embedded in the pool id, then AWS_REGION.
        """
        user_pool_id = self.get("cognito/user-pool-id")
        region = self.get("cognito/region")
        if not region and user_pool_id and "_" in user_pool_id:
            region = user_pool_id.split("_", 1)[0]

        config = {
            "user_pool_id": user_pool_id,
            "app_client_id": self.get("cognito/app-client-id"),
            "region": region or os.getenv("AWS_REGION"),
            "domain": self.get("cognito/domain"),
        }
        logger.info(
            "Loaded Cognito configuration",
            extra={"user_pool_id": user_pool_id, "has_domain": bool(config["domain"])},
        )
        return config


# Global config instance
config = ParameterStoreConfig()


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameter.cache_clear()
    config._config_cache.clear()
    logger.info("Parameter Store cache cleared")
