"""
ConversationStore tests (in-memory repository).

Run with: pytest tests/unit/test_conversation_store.py -v
"""

import pytest


@pytest.fixture
def store():
    from repositories.memory_repo import InMemoryConversationRepository
    from services.conversation_store import ConversationStore

    return ConversationStore(InMemoryConversationRepository())


def test_truncate_title():
    from services.conversation_store import truncate_title

    assert truncate_title("short") == "short"
    assert truncate_title("x" * 50) == "x" * 50
    assert truncate_title("x" * 51) == "x" * 50 + "..."


def test_create_conversation_posts_welcome(store):
    from models.conversation import SenderType
    from utils.settings import DEFAULT_CONVERSATION_TITLE, WELCOME_MESSAGE

    conversation = store.create_conversation("cust-1")
    messages = store.list_messages(conversation.id)

    assert conversation.title == DEFAULT_CONVERSATION_TITLE
    assert conversation.customer_id == "cust-1"
    assert len(messages) == 1
    assert messages[0].sender_type == SenderType.SYSTEM
    assert messages[0].text == WELCOME_MESSAGE


def test_messages_keep_append_order(store):
    from models.conversation import SenderType

    conversation = store.create_conversation("cust-1")
    for i in range(5):
        store.append_message(conversation.id, SenderType.CUSTOMER, f"message {i}")

    first = store.list_messages(conversation.id)
    second = store.list_messages(conversation.id)

    assert [m.text for m in first[1:]] == [f"message {i}" for i in range(5)]
    assert first == second
    sequences = [m.sequence for m in first]
    assert sequences == sorted(sequences)


def test_append_records_attachment(store):
    from models.conversation import Attachment, SenderType

    conversation = store.create_conversation("cust-1")
    message = store.append_message(
        conversation.id,
        SenderType.CUSTOMER,
        "see photo",
        Attachment(file_name="photo.jpg", file_url="s3://bucket/cust-1/1.jpg"),
    )

    assert message.attachment_name == "photo.jpg"
    assert message.attachment_ref == "s3://bucket/cust-1/1.jpg"


def test_append_to_missing_conversation(store):
    from models.conversation import SenderType
    from utils.error_handling import NotFoundError

    with pytest.raises(NotFoundError):
        store.append_message("missing", SenderType.CUSTOMER, "hello")
    with pytest.raises(NotFoundError):
        store.list_messages("missing")


def test_rename_only_once(store):
    conversation = store.create_conversation("cust-1")
    long_text = "My scooter battery drains overnight even when it is switched off"

    assert store.rename_if_default(conversation.id, long_text) is True
    assert store.rename_if_default(conversation.id, "Second message") is False

    title = store.get_conversation(conversation.id).title
    assert title == long_text[:50] + "..."


def test_get_for_enforces_ownership(store, customer, other_customer, admin):
    from utils.error_handling import AuthorizationError

    conversation = store.create_conversation(customer.user_id)

    assert store.get_for(customer, conversation.id).id == conversation.id
    assert store.get_for(admin, conversation.id).id == conversation.id
    with pytest.raises(AuthorizationError):
        store.get_for(other_customer, conversation.id)


def test_list_conversations_is_per_customer(store):
    from models.conversation import SenderType

    older = store.create_conversation("cust-1")
    newer = store.create_conversation("cust-1")
    store.create_conversation("cust-2")
    store.append_message(older.id, SenderType.CUSTOMER, "bump")

    listed = store.list_conversations("cust-1")

    assert [c.id for c in listed] == [older.id, newer.id]


def test_delete_notifies_listeners(store):
    from utils.error_handling import NotFoundError

    seen = []
    store.on_delete(seen.append)
    conversation = store.create_conversation("cust-1")

    store.delete_conversation(conversation.id)

    assert seen == [conversation.id]
    with pytest.raises(NotFoundError):
        store.get_conversation(conversation.id)
