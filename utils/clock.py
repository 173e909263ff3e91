"""UTC wall clock used for timestamps and the reminder window."""

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(instant: datetime) -> str:
    """ISO-8601 in UTC with microseconds and a Z suffix."""
    return (
        instant.astimezone(timezone.utc)
        .isoformat(timespec="microseconds")
        .replace("+00:00", "Z")
    )


def now_iso() -> str:
    return to_iso(utc_now())


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or timestamp as an aware UTC instant.

    A bare YYYY-MM-DD is midnight UTC; timestamps without an offset are taken
    as UTC. Anything unparseable yields None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time(), timezone.utc)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
