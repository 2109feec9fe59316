"""Lightweight health check handler."""

from utils.clock import utcnow
from utils.http import json_response
from utils.settings import PortalSettings


def lambda_handler(event, context):
    """Return a simple 200 response to verify the stack is alive."""
    settings = PortalSettings.from_environment()
    return json_response(
        200,
        {
            "status": "ok",
            "environment": settings.environment,
            "storage_backend": settings.storage_backend,
            "scheduler_backend": settings.scheduler_backend,
            "timestamp": utcnow().isoformat(),
        },
    )
