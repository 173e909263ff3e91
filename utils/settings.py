"""
Deployment settings read from the Lambda environment.

Settings are rebuilt from `os.environ` on every call so a warm container picks
up configuration changes after a redeploy, and tests can patch the environment.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from utils.exceptions import ConfigurationError

# Load .env file for local development
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in _TRUTHY


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


class Settings(BaseModel):
    """Environment-driven configuration for the API functions."""

    cards_table: Optional[str] = None
    profiles_table: Optional[str] = None
    stages_table: Optional[str] = None
    allow_dev_header: bool = False
    reminder_default_days: int = Field(7, ge=1, le=60)
    service_name: str = "jobcopilot-api"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            cards_table=os.environ.get("CARDS_TABLE") or None,
            profiles_table=os.environ.get("PROFILES_TABLE") or None,
            stages_table=os.environ.get("STAGES_TABLE") or None,
            allow_dev_header=_flag(os.environ.get("ALLOW_DEV_HEADER")),
            reminder_default_days=min(
                60, max(1, _int(os.environ.get("REMINDER_DEFAULT_DAYS"), 7))
            ),
        )

    def require_cards_table(self) -> str:
        if not self.cards_table:
            raise ConfigurationError("CARDS_TABLE env var is not set")
        return self.cards_table

    def require_profiles_table(self) -> str:
        if not self.profiles_table:
            raise ConfigurationError("PROFILES_TABLE env var is not set")
        return self.profiles_table


def get_settings() -> Settings:
    """Current settings snapshot."""
    return Settings.from_env()
