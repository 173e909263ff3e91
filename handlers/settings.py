"""
Board stage settings handlers.

GET /settings/stages   stored stages, or the defaults flagged `defaulted`
PUT /settings/stages   replace the stage list
"""

from services.stages import StageConfigStore
from services.storage import get_storage
from utils.decorators import require_auth, validate_json_body
from utils.responses import success_response
from utils.settings import get_settings


def _store(event) -> StageConfigStore:
    table = get_settings().require_cards_table()
    return StageConfigStore(get_storage(), table, event["auth"])


@require_auth
def get_stages(event, context):
    return success_response(data=_store(event).get_stages())


@require_auth
@validate_json_body()
def put_stages(event, context):
    """Body: {"stages": [{key, name, color?, limit?}, ...]}."""
    saved = _store(event).put_stages(event["json_body"].get("stages"))
    return success_response(data=saved)
