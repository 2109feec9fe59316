"""
SQS consumer that delivers delayed auto replies.

The API Lambda cannot keep timers alive between invocations, so in AWS the
reply job is sent to a queue with a delivery delay and handled here.
"""

from pydantic import ValidationError as SchemaError

from models.conversation import ReplyJob
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_portal():
    """Lazy-load the shared portal."""
    from services.portal import get_portal

    return get_portal()


def lambda_handler(event, context):
    """Deliver every reply job in the batch; malformed records are dropped."""
    responder = _get_portal().auto_responder
    delivered = 0
    for record in event.get("Records", []):
        try:
            job = ReplyJob.model_validate_json(record.get("body") or "")
        except SchemaError:
            logger.warning(
                "Dropping malformed reply job", extra={"message_id": record.get("messageId")}
            )
            continue
        responder.deliver_reply(job)
        delivered += 1

    logger.info("Reply batch processed", extra={"delivered": delivered})
    # deliver_reply never raises, so nothing is handed back for retry.
    return {"batchItemFailures": []}
