"""
Derived view handlers.

GET /stats       faceted counts over the caller's cards
GET /reminders   cards due within the next N days
"""

from models.card import CardFilter
from services.cards import CardStore
from services.storage import get_storage
from services.views import (MAX_DAYS, MIN_DAYS, compute_reminders,
                            compute_stats, parse_statuses)
from utils import clock
from utils.decorators import require_auth
from utils.responses import success_response
from utils.routing import int_param, query_params
from utils.settings import get_settings


@require_auth
def get_stats(event, context):
    """GET /stats?q=&status=&company=&title=&location=&tag="""
    table = get_settings().require_cards_table()
    cards = CardStore(get_storage(), table, event["auth"]).all_cards()

    stats = compute_stats(cards, CardFilter.from_params(query_params(event)))
    return success_response(data=stats)


@require_auth
def get_reminders(event, context):
    """GET /reminders?days=&status=   (status may be a comma-separated list)"""
    settings = get_settings()
    table = settings.require_cards_table()
    params = query_params(event)

    days = int_param(params, "days", settings.reminder_default_days, MIN_DAYS, MAX_DAYS)
    cards = CardStore(get_storage(), table, event["auth"]).all_cards()

    reminders = compute_reminders(
        cards,
        days=days,
        now=clock.utc_now(),
        statuses=parse_statuses(params.get("status")),
    )
    return success_response(data={"days": days, **reminders})
