"""Handler for GET /dashboard/stats."""

from utils.http import api_endpoint, json_response
from utils.identity import principal_from_event


def _get_portal():
    """Lazy-load the shared portal."""
    from services.portal import get_portal

    return get_portal()


@api_endpoint
def lambda_handler(event, context):
    """Admin dashboard counters and the most recent tickets."""
    caller = principal_from_event(event)
    return json_response(200, _get_portal().tickets.stats(caller))
