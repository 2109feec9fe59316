"""Chat conversation handlers."""

from models.conversation import SendMessageRequest
from models.identity import Role
from utils.http import api_endpoint, dump_all, json_response, parse_body, path_param
from utils.identity import principal_from_event, require_role
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_portal():
    """Lazy-load the shared portal."""
    from services.portal import get_portal

    return get_portal()


@api_endpoint
def list_handler(event, context):
    """GET /conversations (the caller's own threads, most recent first)."""
    caller = principal_from_event(event)
    conversations = _get_portal().conversations.list_conversations(caller.user_id)
    return json_response(200, {"conversations": dump_all(conversations)})


@api_endpoint
def create_handler(event, context):
    """POST /conversations"""
    caller = principal_from_event(event)
    require_role(caller, Role.CUSTOMER)
    conversation = _get_portal().conversations.create_conversation(caller.user_id)
    return json_response(201, conversation)


@api_endpoint
def messages_handler(event, context):
    """GET /conversations/{id}/messages"""
    caller = principal_from_event(event)
    store = _get_portal().conversations
    conversation = store.get_for(caller, path_param(event, "id"))
    return json_response(
        200,
        {
            "conversation": conversation.model_dump(mode="json"),
            "messages": dump_all(store.list_messages(conversation.id)),
        },
    )


@api_endpoint
def send_handler(event, context):
    """
    POST /conversations/{id}/messages

    Returns 202 with the thread as stored right now; the automated reply
    shows up on a later fetch once its delay has elapsed.
    """
    caller = principal_from_event(event)
    conversation_id = path_param(event, "id")
    payload = SendMessageRequest.model_validate(parse_body(event))

    portal = _get_portal()
    portal.auto_responder.on_customer_message(
        caller, conversation_id, payload.text, payload.attachment
    )
    logger.info("Customer message accepted", extra={"conversation_id": conversation_id})
    return json_response(
        202,
        {
            "conversation": portal.conversations.get_conversation(conversation_id).model_dump(
                mode="json"
            ),
            "messages": dump_all(portal.conversations.list_messages(conversation_id)),
        },
    )
