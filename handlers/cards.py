"""
Job card handlers.

GET    /cards            list the caller's cards (paged, optionally filtered)
POST   /cards            create a card
PUT    /cards/{cardId}   merge a partial update
DELETE /cards/{cardId}   delete a card (idempotent)
"""

from models.card import CardFilter
from services.cards import DEFAULT_LIMIT, MAX_LIMIT, CardStore
from services.storage import get_storage
from utils.decorators import extract_path_params, require_auth, validate_json_body
from utils.responses import HTTPStatus, success_response
from utils.routing import int_param, query_params
from utils.settings import get_settings


def _store(event) -> CardStore:
    table = get_settings().require_cards_table()
    return CardStore(get_storage(), table, event["auth"])


@require_auth
def list_cards(event, context):
    """
    GET /cards?limit=&nextKey=&q=&status=&tag=&location=

    `limit` is clamped to [1, 1000]; `nextKey` is the opaque token returned by
    the previous page.
    """
    params = query_params(event)
    result = _store(event).list_cards(
        limit=int_param(params, "limit", DEFAULT_LIMIT, 1, MAX_LIMIT),
        next_key=params.get("nextKey") or None,
        card_filter=CardFilter.from_params(params),
    )
    return success_response(data=result)


@require_auth
@validate_json_body()
def create_card(event, context):
    """POST /cards. Returns 201 with the stored card."""
    item = _store(event).create_card(event["json_body"])
    return success_response(data=item, status_code=HTTPStatus.CREATED)


@require_auth
@validate_json_body()
@extract_path_params("cardId", message="Missing card id")
def update_card(event, context):
    """PUT /cards/{cardId}. Returns the merged card."""
    item = _store(event).update_card(
        event["path_params"]["cardId"], event["json_body"]
    )
    return success_response(data=item)


@require_auth
@extract_path_params("cardId", message="Missing card id")
def delete_card(event, context):
    """DELETE /cards/{cardId}. Deleting a missing card still succeeds."""
    card_id = _store(event).delete_card(event["path_params"]["cardId"])
    return success_response(data={"cardId": card_id})
