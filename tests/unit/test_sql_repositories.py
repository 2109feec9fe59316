"""
SQL repository tests against in-memory SQLite.

The same SQLAlchemy Core statements run on Postgres in AWS; SQLite ignores
FOR UPDATE, so concurrency is covered by the in-memory backend tests.

Run with: pytest tests/unit/test_sql_repositories.py -v
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool


@pytest.fixture
def sql_portal():
    from services.portal import build_portal
    from utils.settings import PortalSettings

    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    return build_portal(PortalSettings(scheduler_backend="manual"), engine=engine)


def test_uses_sql_repositories(sql_portal):
    from repositories.postgres_repo import SqlKnowledgeRepository

    assert isinstance(sql_portal.knowledge_base.repository, SqlKnowledgeRepository)


def test_knowledge_round_trip(sql_portal, admin):
    kb = sql_portal.knowledge_base
    first = kb.add(admin, "Charging the battery", "Plug it in", "Battery")
    second = kb.add(admin, "Return window", "30 days")

    assert first.sequence < second.sequence
    stored = kb.get(first.id)
    assert stored.question == "Charging the battery"
    assert stored.created_at.tzinfo is not None

    kb.set_active(admin, first.id, False)
    assert [e.id for e in kb.active_in_creation_order()] == [second.id]
    assert kb.count() == 2

    updated = kb.update(admin, second.id, category="Orders")
    assert kb.get(second.id).category == "Orders"
    assert updated.answer == "30 days"

    kb.remove(admin, second.id)
    assert kb.count() == 1


def test_chat_flow(sql_portal, customer, admin):
    from utils.settings import FALLBACK_MESSAGE, WELCOME_MESSAGE

    sql_portal.knowledge_base.add(admin, "How do I charge my battery", "Use the supplied charger.")
    store = sql_portal.conversations
    conversation = store.create_conversation(customer.user_id)

    sql_portal.auto_responder.on_customer_message(customer, conversation.id, "My battery won't charge")
    sql_portal.auto_responder.on_customer_message(customer, conversation.id, "Thanks, what about returns?")
    sql_portal.scheduler.advance(1.0)

    texts = [m.text for m in store.list_messages(conversation.id)]
    assert texts == [
        WELCOME_MESSAGE,
        "My battery won't charge",
        "Thanks, what about returns?",
        "Use the supplied charger.",
        FALLBACK_MESSAGE,
    ]
    assert store.get_conversation(conversation.id).title == "My battery won't charge"
    assert [c.id for c in store.list_conversations(customer.user_id)] == [conversation.id]


def test_delete_conversation_removes_messages(sql_portal, customer):
    from utils.error_handling import NotFoundError

    store = sql_portal.conversations
    conversation = store.create_conversation(customer.user_id)

    store.delete_conversation(conversation.id)

    with pytest.raises(NotFoundError):
        store.list_messages(conversation.id)
    with pytest.raises(NotFoundError):
        store.delete_conversation(conversation.id)


def test_ticket_lifecycle_and_search(sql_portal, customer, admin):
    from models.identity import Profile
    from models.ticket import TicketFilter, TicketStatus
    from utils.error_handling import InvalidStateError

    sql_portal.profiles.upsert(Profile(user_id=customer.user_id, first_name="Ada", last_name="Lovelace"))
    tickets = sql_portal.tickets

    first = tickets.submit(customer, "Brakes squeak")
    second = tickets.submit(customer, "Battery drains")
    tickets.respond(admin, first.id, "Adjust the pads")
    tickets.close(admin, first.id)

    with pytest.raises(InvalidStateError):
        tickets.respond(admin, first.id, "Again")

    assert [t.id for t in tickets.list(admin)] == [second.id, first.id]
    assert [t.id for t in tickets.list(admin, TicketFilter(status=TicketStatus.CLOSED))] == [first.id]
    assert len(tickets.list(admin, TicketFilter(search_text="lovelace"))) == 2

    stats = tickets.stats(admin)
    assert stats.total_customers == 1
    assert stats.open_tickets == 1


def test_profile_upsert_updates_existing(sql_portal):
    from models.identity import Profile

    profiles = sql_portal.profiles
    profiles.upsert(Profile(user_id="u1", first_name="Ada", last_name="King"))
    profiles.upsert(Profile(user_id="u1", first_name="Ada", last_name="Lovelace"))

    assert profiles.get("u1").display_name == "Ada Lovelace"
    assert profiles.display_names(["u1", "u2"]) == {"u1": "Ada Lovelace"}
