"""
Card store: CRUD over job cards in the caller's partition.

A CardStore is bound to one principal at construction; none of its methods
accept a user id, so a handler cannot address another user's partition.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from models.card import CardCreate, CardFilter, CardUpdate
from models.dynamodb import PARTITION_KEY, SORT_KEY, is_reserved_sort_key, strip_reserved
from services.storage import StorageAdapter
from utils import clock
from utils.exceptions import BadRequestError
from utils.identity import Principal

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 500
MAX_LIMIT = 1000


def encode_next_key(last_evaluated: Optional[Dict[str, Any]]) -> Optional[str]:
    if not last_evaluated:
        return None
    raw = json.dumps(last_evaluated, sort_keys=True, default=str)
    # URL-safe alphabet, unpadded: the token travels in a query string.
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_next_key(token: Optional[str], user_id: str) -> Optional[Dict[str, Any]]:
    """
    Decode a continuation token from a previous listing.

    Raises:
        BadRequestError: if the token is malformed or belongs to another user
    """
    if not token:
        return None
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        decoded = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        raise BadRequestError("Invalid nextKey")

    if (
        not isinstance(decoded, dict)
        or decoded.get(PARTITION_KEY) != user_id
        or not isinstance(decoded.get(SORT_KEY), str)
    ):
        raise BadRequestError("Invalid nextKey")
    return decoded


class CardStore:
    """Card operations scoped to a single principal."""

    def __init__(self, storage: StorageAdapter, table: str, principal: Principal):
        self.storage = storage
        self.table = table
        self.user_id = principal.user_id

    @staticmethod
    def _check_card_id(card_id: str) -> str:
        card_id = (card_id or "").strip()
        if not card_id:
            raise BadRequestError("Missing card id")
        if is_reserved_sort_key(card_id):
            raise BadRequestError("Card id uses a reserved prefix")
        return card_id

    def list_cards(
        self,
        limit: int = DEFAULT_LIMIT,
        next_key: Optional[str] = None,
        card_filter: Optional[CardFilter] = None,
    ) -> Dict[str, Any]:
        """One page of cards, settings rows removed, optionally filtered."""
        page = self.storage.query(
            self.table,
            self.user_id,
            limit=limit,
            exclusive_start=decode_next_key(next_key, self.user_id),
        )
        items = strip_reserved(page.items)
        if card_filter and not card_filter.is_empty():
            items = [item for item in items if card_filter.matches(item)]
        return {"items": items, "nextKey": encode_next_key(page.last_evaluated)}

    def all_cards(self) -> List[Dict[str, Any]]:
        """Every card in the partition, for read-only aggregations."""
        return strip_reserved(self.storage.load_partition(self.table, self.user_id))

    def create_card(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Store a new card, or replace one when the client supplies its cardId.

        A replaced card keeps its stored createdAt. Otherwise a client createdAt
        is kept only if it parses, and is clamped to now.
        """
        card = CardCreate.model_validate(body)
        now = clock.utc_now()

        existing = None
        if card.cardId:
            self._check_card_id(card.cardId)
            existing = self.storage.point_get(self.table, self.user_id, card.cardId)

        if existing and existing.get("createdAt"):
            created_at = existing["createdAt"]
        else:
            created_at = clock.to_iso(min(clock.parse_instant(card.createdAt) or now, now))

        item = card.to_item(self.user_id, clock.to_iso(now), created_at).model_dump()
        self.storage.put(self.table, item)
        logger.info(
            "Card created", extra={"user_id": self.user_id, "card_id": item["cardId"]}
        )
        return item

    def update_card(self, card_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Merge whitelisted fields; updatedAt always moves, createdAt never does."""
        card_id = self._check_card_id(card_id)
        now = clock.now_iso()

        patch = CardUpdate.model_validate(body).to_patch()
        patch["updatedAt"] = now

        return self.storage.update(
            self.table,
            self.user_id,
            card_id,
            patch,
            set_if_missing={"createdAt": now},
        )

    def delete_card(self, card_id: str) -> str:
        card_id = self._check_card_id(card_id)
        self.storage.delete(self.table, self.user_id, card_id)
        logger.info("Card deleted", extra={"user_id": self.user_id, "card_id": card_id})
        return card_id
