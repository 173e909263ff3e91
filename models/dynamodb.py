"""DynamoDB key layout and item models for the job tracker tables."""

from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from models.stage import StageRecord

# Cards table: partition key = principal, sort key = card id.
PARTITION_KEY = "userId"
SORT_KEY = "cardId"

# Sort keys with this prefix hold per-user settings, never cards.
RESERVED_PREFIX = "SETTINGS#"
STAGES_SORT_KEY = f"{RESERVED_PREFIX}stages"


def is_reserved_sort_key(sort_key: Any) -> bool:
    return str(sort_key or "").startswith(RESERVED_PREFIX)


def strip_reserved(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop settings rows from a partition read, leaving only cards."""
    return [item for item in items if not is_reserved_sort_key(item.get(SORT_KEY))]


class DynamoDBItem(BaseModel):
    """Base class for all items; every item belongs to exactly one user."""

    userId: str


class CardItem(DynamoDBItem):
    """A job card as stored in the cards table."""

    model_config = ConfigDict(extra="allow")

    cardId: str
    title: str = ""
    company: str = ""
    location: str = ""
    link: str = ""
    status: str = "saved"
    dueDate: str = ""
    notes: str = ""
    tags: List[str] = []
    contactName: str = ""
    contactEmail: str = ""
    contactPhone: str = ""
    salary: Union[int, float, str, None] = None
    referredBy: str = ""
    source: str = ""
    flagged: bool = False
    createdAt: str
    updatedAt: str


class StageConfigItem(DynamoDBItem):
    """The ordered stage list, stored beside the user's cards."""

    cardId: str = STAGES_SORT_KEY
    stages: List[StageRecord]
    updatedAt: str


class ProfileItem(DynamoDBItem):
    """A user profile in the profiles table (partition key only)."""

    model_config = ConfigDict(extra="ignore")

    fullName: Optional[str] = None
    email: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    role: Optional[str] = None
    backgroundType: Optional[str] = None
    universityName: Optional[str] = None
    jobExperience: Optional[str] = None
    createdAt: str
    updatedAt: str
