"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Why one Lambda?
- One warm container keeps the portal services (and the DB pool) alive for
  every route.
- Routes stay declared in one table while the handlers stay small.
"""

from typing import Callable, Dict, Optional, Tuple

from utils.http import json_response

from . import attachments, conversations, dashboard, health_check, knowledge, tickets

ROUTE_TABLE: Tuple[Tuple[str, str, Callable], ...] = (
    ("GET", "/health", health_check.lambda_handler),
    ("GET", "/help-center", knowledge.help_center_handler),
    ("GET", "/kb", knowledge.list_handler),
    ("POST", "/kb", knowledge.create_handler),
    ("PATCH", "/kb/{id}", knowledge.update_handler),
    ("POST", "/kb/{id}/active", knowledge.toggle_handler),
    ("DELETE", "/kb/{id}", knowledge.delete_handler),
    ("GET", "/conversations", conversations.list_handler),
    ("POST", "/conversations", conversations.create_handler),
    ("GET", "/conversations/{id}/messages", conversations.messages_handler),
    ("POST", "/conversations/{id}/messages", conversations.send_handler),
    ("GET", "/tickets", tickets.list_handler),
    ("POST", "/tickets", tickets.submit_handler),
    ("GET", "/tickets/{id}", tickets.get_handler),
    ("POST", "/tickets/{id}/respond", tickets.respond_handler),
    ("POST", "/tickets/{id}/close", tickets.close_handler),
    ("GET", "/dashboard/stats", dashboard.lambda_handler),
    ("POST", "/attachments", attachments.lambda_handler),
)


def _match(template: str, path: str) -> Optional[Dict[str, str]]:
    """Return the path parameters when path fits template, else None."""
    expected = template.strip("/").split("/")
    actual = path.strip("/").split("/")
    if len(expected) != len(actual):
        return None

    params: Dict[str, str] = {}
    for want, got in zip(expected, actual):
        if want.startswith("{") and want.endswith("}"):
            if not got:
                return None
            params[want[1:-1]] = got
        elif want != got:
            return None
    return params


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the matching
    handler and fill in pathParameters the way a per-route integration would.
    """
    http = event.get("requestContext", {}).get("http", {})
    method = http.get("method", "").upper()
    path = http.get("path", "")
    route_key = f"{method} {path}"

    for route_method, template, handler in ROUTE_TABLE:
        if route_method != method:
            continue
        params = _match(template, path)
        if params is None:
            continue
        if params:
            event = {
                **event,
                "pathParameters": {**(event.get("pathParameters") or {}), **params},
            }
        return handler(event, context)

    return json_response(404, {"message": "Route not found", "route": route_key})
