"""
Profile handlers.

GET /profile   the caller's profile, or `profile: null` before the first save
PUT /profile   create on first save, patch afterwards
"""

from services.profiles import ProfileStore
from services.storage import get_storage
from utils.decorators import require_auth, validate_json_body
from utils.responses import success_response
from utils.settings import get_settings


def _store(event) -> ProfileStore:
    table = get_settings().require_profiles_table()
    return ProfileStore(get_storage(), table, event["auth"])


@require_auth
def get_profile(event, context):
    return success_response(data={"profile": _store(event).get_profile()})


@require_auth
@validate_json_body()
def put_profile(event, context):
    """
    Validation failures return 400 with {"ok": false, "errors": [{field, message}]}.
    """
    profile = _store(event).save_profile(event["json_body"])
    return success_response(data={"profile": profile})
