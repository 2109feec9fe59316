"""
POST /attachments: upload a customer file to S3.

The returned ``{"file_name", "file_url"}`` pair is what the chat and ticket
endpoints accept as their ``attachment`` field.
"""

import base64
import binascii
from typing import Optional

from utils.error_handling import ValidationError
from utils.http import api_endpoint, json_response, parse_body
from utils.identity import principal_from_event
from utils.logging_config import get_logger
from utils.settings import PortalSettings

logger = get_logger(__name__)

_store = None


def _get_store():
    """Lazy-load the S3 attachment store."""
    global _store
    if _store is None:
        from repositories.s3_repo import S3AttachmentStore

        settings = PortalSettings.from_environment()
        if not settings.attachments_bucket:
            raise RuntimeError("ATTACHMENTS_BUCKET is not configured")
        _store = S3AttachmentStore(
            settings.attachments_bucket, max_bytes=settings.max_attachment_bytes
        )
    return _store


def set_store(store: Optional[object]) -> None:
    """Install or clear the attachment store (tests and custom wiring)."""
    global _store
    _store = store


@api_endpoint
def lambda_handler(event, context):
    caller = principal_from_event(event)
    body = parse_body(event)
    file_name = str(body.get("file_name") or "")
    try:
        content = base64.b64decode(body.get("content_base64") or "", validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("content_base64 is not valid base64", field="content_base64") from None

    attachment = _get_store().upload(caller.user_id, file_name, content)
    logger.info(
        "Attachment uploaded",
        extra={"owner_id": caller.user_id, "size": len(content)},
    )
    return json_response(201, attachment)
