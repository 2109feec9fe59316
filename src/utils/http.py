"""Helpers shared by the API Gateway HTTP API handlers."""

import functools
import json
import uuid
from typing import Any, Callable, Dict

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from utils.error_handling import AppError, ValidationError, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)


def json_response(status: int, body: Any) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    if isinstance(body, BaseModel):
        payload = body.model_dump_json()
    else:
        payload = json.dumps(body, default=str)
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": payload,
    }


def dump_all(items) -> list:
    """Serialize a list of models for json_response."""
    return [item.model_dump(mode="json") for item in items]


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the JSON body; malformed JSON is a caller error."""
    raw = event.get("body") or "{}"
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Request body is not valid JSON", field="body") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", field="body")
    return payload


def path_param(event: Dict[str, Any], name: str) -> str:
    """Read a required path parameter."""
    value = (event.get("pathParameters") or {}).get(name)
    if not value:
        raise ValidationError(f"{name} is required", field=name)
    return value


def query_param(event: Dict[str, Any], name: str) -> str:
    """Read an optional query string parameter ("" when absent)."""
    return ((event.get("queryStringParameters") or {}).get(name) or "").strip()


def api_endpoint(func: Callable) -> Callable:
    """
    Map exceptions raised by a handler onto HTTP responses.

    AppError subclasses keep their status and details, payload schema errors
    become 422, anything else is logged and returned as an opaque 500.
    """

    @functools.wraps(func)
    def wrapper(event, context):
        correlation_id = str(uuid.uuid4())
        try:
            return func(event, context)
        except AppError as exc:
            logger.info(
                "Request rejected",
                extra={
                    "correlation_id": correlation_id,
                    "handler": func.__name__,
                    "error_type": exc.error_type,
                },
            )
            return to_response(exc, correlation_id)
        except SchemaError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            error = ValidationError(first.get("msg", "Invalid request"), field=field)
            return to_response(error, correlation_id)
        except Exception:
            logger.exception(
                "Request failed",
                extra={"correlation_id": correlation_id, "handler": func.__name__},
            )
            return json_response(
                500,
                {
                    "message": "Internal error",
                    "status": "error",
                    "correlation_id": correlation_id,
                },
            )

    return wrapper
