"""
Profile models and validation.

A profile is created by the first PUT (all required fields validated) and
patched by later PUTs (only the fields present are validated, and the
background rule is re-checked against patch-over-existing).
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import (BaseModel, ConfigDict, EmailStr, ValidationError,
                      ValidationInfo, field_validator)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

GENDERS = ("Male", "Female", "Other", "Prefer not to say")
ROLES = ("student", "tutor")
BACKGROUND_TYPES = ("student", "experienced")

PROFILE_FIELDS = (
    "fullName",
    "email",
    "dob",
    "gender",
    "country",
    "city",
    "role",
    "backgroundType",
    "universityName",
    "jobExperience",
)

MIN_AGE = 13
MAX_AGE = 120

_DOB_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _lookup_key(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


_CANONICAL = {_lookup_key(field): field for field in PROFILE_FIELDS}


def normalize_profile_input(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map client keys onto canonical field names.

    Keys are matched case-insensitively and snake_case or kebab-case spellings
    are accepted. Strings are trimmed, empty strings dropped, unknown keys
    (including any userId) discarded.
    """
    out: Dict[str, Any] = {}
    for key, value in (raw or {}).items():
        field = _CANONICAL.get(_lookup_key(str(key)))
        if field is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        if value is None:
            continue
        out[field] = value
    return out


def age_on(dob: date, today: date) -> int:
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def _today(info: ValidationInfo) -> date:
    context = info.context or {}
    return context.get("today") or datetime.now(timezone.utc).date()


def _length_between(value: str, low: int, high: int) -> str:
    if not low <= len(value) <= high:
        raise PydanticCustomError(
            "length", "Must be {low}-{high} characters.", {"low": low, "high": high}
        )
    return value


class _ProfileFields(BaseModel):
    """Per-field rules shared by create and patch validation."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    @field_validator("full_name", check_fields=False)
    @classmethod
    def _full_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _length_between(value, 2, 80)

    @field_validator("country", "city", check_fields=False)
    @classmethod
    def _place(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _length_between(value, 2, 80)

    @field_validator("dob", check_fields=False)
    @classmethod
    def _dob(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is None:
            return None
        try:
            if not _DOB_PATTERN.match(value):
                raise ValueError(value)
            born = date.fromisoformat(value)
        except ValueError:
            raise PydanticCustomError(
                "dob_format", "Must be in YYYY-MM-DD format and be a real date."
            )
        if not MIN_AGE <= age_on(born, _today(info)) <= MAX_AGE:
            raise PydanticCustomError(
                "dob_age",
                "Age must be between {low} and {high}.",
                {"low": MIN_AGE, "high": MAX_AGE},
            )
        return value

    @field_validator("gender", check_fields=False)
    @classmethod
    def _gender(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in GENDERS:
            raise PydanticCustomError(
                "gender", "Must be one of: Male, Female, Other, Prefer not to say."
            )
        return value

    @field_validator("role", check_fields=False)
    @classmethod
    def _role(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ROLES:
            raise PydanticCustomError("role", "Must be 'student' or 'tutor'.")
        return value

    @field_validator("background_type", check_fields=False)
    @classmethod
    def _background(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in BACKGROUND_TYPES:
            raise PydanticCustomError(
                "background_type", "Must be 'student' or 'experienced'."
            )
        return value

    @field_validator("university_name", check_fields=False)
    @classmethod
    def _university(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > 120:
            raise PydanticCustomError("length", "Too long (max 120).")
        return value

    @field_validator("job_experience", check_fields=False)
    @classmethod
    def _experience(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > 200:
            raise PydanticCustomError("length", "Too long (max 200).")
        return value


class ProfileCreate(_ProfileFields):
    """A first save: everything but the legacy `role` is required."""

    full_name: str
    email: EmailStr
    dob: str
    gender: str
    country: str
    city: str
    role: Optional[str] = None
    background_type: str
    university_name: Optional[str] = None
    job_experience: Optional[str] = None


class ProfilePatch(_ProfileFields):
    """A later save: every field is optional."""

    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    dob: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    role: Optional[str] = None
    background_type: Optional[str] = None
    university_name: Optional[str] = None
    job_experience: Optional[str] = None


def _field_errors(exc: ValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "profile"
        if err["type"] == "missing":
            message = "This field is required."
        elif field == "email":
            message = "Email is not valid."
        else:
            message = err["msg"]
        errors.append({"field": field, "message": message})
    return errors


def background_errors(
    candidate: Dict[str, Any], patch: Optional[Dict[str, Any]] = None
) -> List[Dict[str, str]]:
    """
    Check the background rule on a merged candidate.

    A student needs a university and no job experience; an experienced user
    needs job experience and no university. When `patch` is given, only values
    in the patch can violate the "must be empty" half of the rule, because the
    opposite field is cleared on save.
    """
    patch = candidate if patch is None else patch
    background = candidate.get("backgroundType")
    errors = []
    if background == "student":
        if not candidate.get("universityName"):
            errors.append(
                {
                    "field": "universityName",
                    "message": "Required when backgroundType = student.",
                }
            )
        if patch.get("jobExperience"):
            errors.append(
                {
                    "field": "jobExperience",
                    "message": "Should be empty when backgroundType = student.",
                }
            )
    elif background == "experienced":
        if not candidate.get("jobExperience"):
            errors.append(
                {
                    "field": "jobExperience",
                    "message": "Required when backgroundType = experienced.",
                }
            )
        if patch.get("universityName"):
            errors.append(
                {
                    "field": "universityName",
                    "message": "Should be empty when backgroundType = experienced.",
                }
            )
    return errors


def validate_profile_create(
    candidate: Dict[str, Any], today: Optional[date] = None
) -> List[Dict[str, str]]:
    """Errors for a first save; an empty list means the profile is valid."""
    errors: List[Dict[str, str]] = []
    try:
        ProfileCreate.model_validate(candidate, context={"today": today})
    except ValidationError as e:
        errors.extend(_field_errors(e))
    errors.extend(background_errors(candidate))
    return errors


def validate_profile_update(
    patch: Dict[str, Any], existing: Dict[str, Any], today: Optional[date] = None
) -> List[Dict[str, str]]:
    """Errors for a patch applied over an existing profile."""
    errors: List[Dict[str, str]] = []
    try:
        ProfilePatch.model_validate(patch, context={"today": today})
    except ValidationError as e:
        errors.extend(_field_errors(e))

    merged = {**existing, **patch}
    errors.extend(background_errors(merged, patch))
    return errors


def merge_profile(
    existing: Optional[Dict[str, Any]],
    patch: Dict[str, Any],
    user_id: str,
    token_email: Optional[str],
    now: str,
) -> Dict[str, Any]:
    """Apply a validated patch; the background rule's opposite field is cleared."""
    merged: Dict[str, Any] = {
        key: value
        for key, value in (existing or {}).items()
        if key in PROFILE_FIELDS
    }
    merged.update(patch)

    email = token_email or patch.get("email") or merged.get("email")
    if email:
        merged["email"] = email

    background = merged.get("backgroundType")
    if background == "student":
        merged.pop("jobExperience", None)
    elif background == "experienced":
        merged.pop("universityName", None)

    merged["userId"] = user_id
    merged["createdAt"] = (existing or {}).get("createdAt") or now
    merged["updatedAt"] = now
    return merged
