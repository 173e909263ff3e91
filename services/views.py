"""
Derived views over a user's cards: faceted counts and the reminder window.

Both are pure functions over an already-loaded list of cards, so handlers
only decide where the cards come from.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from models.card import CardFilter, normalize_tags
from utils import clock

EMPTY_FACET = "—"
MIN_DAYS = 1
MAX_DAYS = 60


def facet_key(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text or EMPTY_FACET


def _bump(counts: Dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def compute_stats(
    cards: Iterable[Dict[str, Any]], card_filter: Optional[CardFilter] = None
) -> Dict[str, Any]:
    """
    Count filtered cards per status, company, title, location and tag.

    Facet keys are trimmed and lowercased; blank values land under "—".
    A card adds one to byTag for each of its tags.
    """
    card_filter = card_filter or CardFilter()
    filtered = [card for card in cards if card_filter.matches(card)]

    totals: Dict[str, Dict[str, int]] = {
        "byStatus": {},
        "byCompany": {},
        "byTitle": {},
        "byLocation": {},
        "byTag": {},
    }
    for card in filtered:
        _bump(totals["byStatus"], facet_key(card.get("status")))
        _bump(totals["byCompany"], facet_key(card.get("company")))
        _bump(totals["byTitle"], facet_key(card.get("title")))
        _bump(totals["byLocation"], facet_key(card.get("location")))
        for tag in normalize_tags(card.get("tags")):
            _bump(totals["byTag"], facet_key(tag))

    return {"count": len(filtered), "totals": totals}


def parse_due_date(value: Any) -> Optional[datetime]:
    """Due date as a UTC instant; see `clock.parse_instant`."""
    return clock.parse_instant(value)


def parse_statuses(raw: Optional[str]) -> Optional[set]:
    """Comma-separated status list, lowercased; None when no filter applies."""
    statuses = {part.strip().lower() for part in (raw or "").split(",") if part.strip()}
    return statuses or None


def reminder_window(now: datetime, days: int):
    """Closed interval [today UTC midnight, today + days]."""
    start = datetime.combine(now.astimezone(timezone.utc).date(), time(), timezone.utc)
    return start, start + timedelta(days=days)


def compute_reminders(
    cards: Iterable[Dict[str, Any]],
    days: int,
    now: datetime,
    statuses: Optional[set] = None,
) -> Dict[str, Any]:
    """Cards due inside the window, earliest first, projected to reminder rows."""
    start, end = reminder_window(now, days)

    due = []
    for card in cards:
        instant = parse_due_date(card.get("dueDate"))
        if instant is None or not start <= instant <= end:
            continue
        if statuses and str(card.get("status") or "").lower() not in statuses:
            continue
        due.append((instant, card))

    due.sort(key=lambda pair: pair[0])
    items: List[Dict[str, Any]] = [
        {
            "cardId": card.get("cardId"),
            "title": card.get("title") or "(no title)",
            "company": card.get("company") or "",
            "status": card.get("status") or "",
            "dueDate": instant.date().isoformat(),
        }
        for instant, card in due
    ]
    return {"count": len(items), "items": items}
