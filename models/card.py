"""Job card request models and the shared card filter."""

import math
import uuid
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from models.dynamodb import CardItem

# Attributes a client may write with PUT /cards/{id}.
UPDATABLE_FIELDS = (
    "title",
    "company",
    "location",
    "link",
    "status",
    "dueDate",
    "notes",
    "tags",
    "contactName",
    "contactEmail",
    "contactPhone",
    "flagged",
    "salary",
    "referredBy",
    "source",
)

TEXT_FIELDS = (
    "company",
    "location",
    "link",
    "notes",
    "contactName",
    "contactEmail",
    "contactPhone",
    "referredBy",
    "source",
)

DEFAULT_STATUS = "saved"


def normalize_tags(value: Any) -> List[str]:
    """Accept an array or a comma-separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        parts = list(value)
    else:
        return []
    return [str(part).strip() for part in parts if str(part).strip()]


def normalize_salary(value: Any) -> Union[int, float, str, None]:
    """Empty collapses to None, numeric text becomes a number, anything else stays text."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return text
    if not math.isfinite(number):
        return text
    return int(number) if number.is_integer() else number


def normalize_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def normalize_status(value: Any) -> str:
    return str(value or DEFAULT_STATUS).strip().lower() or DEFAULT_STATUS


class _CardFields(BaseModel):
    """Normalization shared by create and update payloads."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("title", check_fields=False, mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator(*TEXT_FIELDS, check_fields=False, mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("dueDate", check_fields=False, mode="before")
    @classmethod
    def _due_date(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("status", check_fields=False, mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return normalize_status(value)

    @field_validator("tags", check_fields=False, mode="before")
    @classmethod
    def _tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)

    @field_validator("salary", check_fields=False, mode="before")
    @classmethod
    def _salary(cls, value: Any) -> Union[int, float, str, None]:
        return normalize_salary(value)

    @field_validator("flagged", check_fields=False, mode="before")
    @classmethod
    def _flagged(cls, value: Any) -> bool:
        return normalize_flag(value)


class CardCreate(_CardFields):
    """Body of POST /cards. Any userId in the payload is ignored."""

    cardId: Optional[str] = None
    title: str = ""
    company: str = ""
    location: str = ""
    link: str = ""
    status: str = DEFAULT_STATUS
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
    createdAt: Optional[str] = None

    @field_validator("cardId", "createdAt", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    def to_item(self, user_id: str, now: str, created_at: str) -> CardItem:
        data = self.model_dump(exclude={"cardId", "createdAt"})
        return CardItem(
            userId=user_id,
            cardId=self.cardId or str(uuid.uuid4()),
            createdAt=created_at,
            updatedAt=now,
            **data,
        )


class CardUpdate(_CardFields):
    """Body of PUT /cards/{id}; only fields present in the payload are written."""

    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    link: Optional[str] = None
    status: Optional[str] = None
    dueDate: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    contactName: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    salary: Union[int, float, str, None] = None
    referredBy: Optional[str] = None
    source: Optional[str] = None
    flagged: Optional[bool] = None

    def to_patch(self) -> Dict[str, Any]:
        return self.model_dump(include=set(UPDATABLE_FIELDS), exclude_unset=True)


class CardFilter(BaseModel):
    """
    Case-insensitive card predicate shared by the list and stats endpoints.

    `q` is a substring match over title, company, location and tags; the
    other fields must match exactly, and `tag` must be one of the card's tags.
    """

    q: str = ""
    status: str = ""
    company: str = ""
    title: str = ""
    location: str = ""
    tag: str = ""

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "CardFilter":
        return cls(
            **{
                name: str(params.get(name) or "").strip().lower()
                for name in cls.model_fields
            }
        )

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)

    def matches(self, card: Dict[str, Any]) -> bool:
        tags = [tag.lower() for tag in normalize_tags(card.get("tags"))]

        if self.q:
            haystack = " ".join(
                [
                    str(card.get("title") or ""),
                    str(card.get("company") or ""),
                    str(card.get("location") or ""),
                    " ".join(tags),
                ]
            ).lower()
            if self.q not in haystack:
                return False

        for name in ("status", "company", "title", "location"):
            wanted = getattr(self, name)
            if wanted and str(card.get(name) or "").strip().lower() != wanted:
                return False

        if self.tag and self.tag not in tags:
            return False

        return True
