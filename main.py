"""
Lambda entry points for the job tracker API.

`api_handler` serves every route through the routing table; `healthz` is a
separate unauthenticated function for monitoring.
"""

from handlers.routes import router
from utils import clock
from utils.decorators import lambda_handler
from utils.responses import success_response
from utils.settings import get_settings


def health_check(event, context):
    """GET /health. Requires no authentication."""
    return success_response(
        data={
            "service": get_settings().service_name,
            "ts": clock.now_iso(),
        }
    )


router.add("GET", "/health", health_check)


@lambda_handler()
def healthz(event, context):
    return health_check(event, context)


@lambda_handler()
def api_handler(event, context):
    """Resolve the route, run its handler, and answer CORS preflights."""
    return router.dispatch(event, context)
