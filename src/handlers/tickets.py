"""
Ticket (customer query) handlers.

Customers submit and read their own tickets; admins list everything,
respond and close.
"""

from models.ticket import TicketFilter, TicketResponseRequest, TicketStatus, TicketSubmission
from utils.error_handling import ValidationError
from utils.http import api_endpoint, dump_all, json_response, parse_body, path_param, query_param
from utils.identity import principal_from_event


def _get_portal():
    """Lazy-load the shared portal."""
    from services.portal import get_portal

    return get_portal()


def _status_filter(raw: str):
    if not raw or raw == "all":
        return None
    try:
        return TicketStatus(raw)
    except ValueError:
        raise ValidationError(f"Unknown status '{raw}'", field="status") from None


@api_endpoint
def list_handler(event, context):
    """GET /tickets?status=&search="""
    caller = principal_from_event(event)
    ticket_filter = TicketFilter(
        status=_status_filter(query_param(event, "status")),
        search_text=query_param(event, "search") or None,
    )
    tickets = _get_portal().tickets.list(caller, ticket_filter)
    return json_response(200, {"tickets": dump_all(tickets)})


@api_endpoint
def submit_handler(event, context):
    """POST /tickets"""
    caller = principal_from_event(event)
    payload = TicketSubmission.model_validate(parse_body(event))
    ticket = _get_portal().tickets.submit(caller, payload.query_text, payload.attachment)
    return json_response(201, ticket)


@api_endpoint
def get_handler(event, context):
    """GET /tickets/{id}"""
    caller = principal_from_event(event)
    return json_response(200, _get_portal().tickets.get(caller, path_param(event, "id")))


@api_endpoint
def respond_handler(event, context):
    """POST /tickets/{id}/respond"""
    caller = principal_from_event(event)
    payload = TicketResponseRequest.model_validate(parse_body(event))
    ticket = _get_portal().tickets.respond(caller, path_param(event, "id"), payload.response_text)
    return json_response(200, ticket)


@api_endpoint
def close_handler(event, context):
    """POST /tickets/{id}/close"""
    caller = principal_from_event(event)
    ticket = _get_portal().tickets.close(caller, path_param(event, "id"))
    return json_response(200, ticket)
