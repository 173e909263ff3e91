"""Stage configuration models, defaults and validation."""

import math
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from utils.exceptions import BadRequestError

KEY_PATTERN = re.compile(r"^[a-z0-9-]+$")


class StageRecord(BaseModel):
    """One column of the board. `limit` is an optional WIP cap."""

    key: str
    name: str
    color: Optional[str] = None
    limit: Optional[int] = None


DEFAULT_STAGES = (
    StageRecord(key="saved", name="Saved", color="bg-sky-50"),
    StageRecord(key="applied", name="Applied", color="bg-emerald-50"),
    StageRecord(key="screening", name="Screening", color="bg-amber-50"),
    StageRecord(key="final", name="Final", color="bg-violet-50"),
    StageRecord(key="closed", name="Closed", color="bg-rose-50"),
)


def default_stages() -> List[StageRecord]:
    """Built-in stage list returned before a user saves their own."""
    return [stage.model_copy() for stage in DEFAULT_STAGES]


class StageInput(StageRecord):
    """A stage row as submitted by the client, normalized on the way in."""

    @field_validator("key", mode="before")
    @classmethod
    def normalize_key(cls, value: Any) -> str:
        key = str(value if value is not None else "").strip().lower()
        if not key:
            raise PydanticCustomError("stage_key", "key is required")
        if not KEY_PATTERN.match(key):
            raise PydanticCustomError(
                "stage_key", "key must match {pattern}", {"pattern": KEY_PATTERN.pattern}
            )
        return key

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: Any) -> str:
        name = str(value if value is not None else "").strip()
        if not name:
            raise PydanticCustomError("stage_name", "name is required")
        return name

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("limit", mode="before")
    @classmethod
    def normalize_limit(cls, value: Any) -> Optional[int]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            if isinstance(value, bool):
                raise ValueError
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan
        if not math.isfinite(number) or number < 1:
            raise PydanticCustomError(
                "stage_limit", "limit must be empty or a number >= 1"
            )
        return math.floor(number)


def validate_stages(raw: Any) -> List[StageRecord]:
    """
    Validate and normalize a submitted stage list.

    Stops at the first bad row.

    Raises:
        BadRequestError: with a "Row N: ..." message
    """
    if not isinstance(raw, list) or not raw:
        raise BadRequestError("stages must be a non-empty array")

    cleaned: List[StageRecord] = []
    seen = set()
    for index, row in enumerate(raw, start=1):
        data: Dict[str, Any] = row if isinstance(row, dict) else {}
        try:
            stage = StageInput.model_validate(
                {
                    "key": data.get("key"),
                    "name": data.get("name"),
                    "color": data.get("color"),
                    "limit": data.get("limit"),
                }
            )
        except ValidationError as e:
            raise BadRequestError(f"Row {index}: {e.errors()[0]['msg']}")

        if stage.key in seen:
            raise BadRequestError(f"Row {index}: duplicate key '{stage.key}'")
        seen.add(stage.key)
        cleaned.append(StageRecord(**stage.model_dump()))

    return cleaned
