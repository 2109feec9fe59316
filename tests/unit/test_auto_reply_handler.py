"""
SQS auto-reply consumer tests.

Run with: pytest tests/unit/test_auto_reply_handler.py -v
"""

from datetime import datetime, timezone


def _record(body, message_id="msg-1"):
    return {"messageId": message_id, "body": body}


def test_delivers_reply_from_queue(portal, admin, customer):
    from handlers.auto_reply import lambda_handler
    from models.conversation import ReplyJob

    portal.knowledge_base.add(admin, "How do I charge my battery", "Use the supplied charger.")
    conversation = portal.conversations.create_conversation(customer.user_id)
    job = ReplyJob(
        conversation_id=conversation.id,
        text="My battery won't charge",
        customer_message_id="m1",
        requested_at=datetime.now(timezone.utc),
    )

    result = lambda_handler({"Records": [_record(job.model_dump_json())]}, None)

    assert result == {"batchItemFailures": []}
    assert portal.conversations.list_messages(conversation.id)[-1].text == "Use the supplied charger."


def test_malformed_and_orphaned_records_are_dropped(portal):
    from handlers.auto_reply import lambda_handler
    from models.conversation import ReplyJob

    orphan = ReplyJob(
        conversation_id="deleted",
        text="hello",
        customer_message_id="m1",
        requested_at=datetime.now(timezone.utc),
    )
    event = {
        "Records": [
            _record("not json", "bad-1"),
            _record('{"text": "missing fields"}', "bad-2"),
            _record(orphan.model_dump_json(), "orphan"),
        ]
    }

    assert lambda_handler(event, None) == {"batchItemFailures": []}


def test_empty_batch():
    from handlers.auto_reply import lambda_handler
    from services.portal import build_portal, set_portal
    from utils.settings import PortalSettings

    set_portal(build_portal(PortalSettings(scheduler_backend="manual")))
    try:
        assert lambda_handler({}, None) == {"batchItemFailures": []}
    finally:
        set_portal(None)
