"""
Ticket lifecycle tests (in-memory repositories).

Run with: pytest tests/unit/test_ticket_lifecycle.py -v
"""

import threading

import pytest


@pytest.fixture
def tickets(portal):
    return portal.tickets


def test_submit_creates_open_ticket(tickets, customer):
    from models.ticket import TicketStatus

    ticket = tickets.submit(customer, "  My scooter will not start  ")

    assert ticket.status == TicketStatus.OPEN
    assert ticket.query_text == "My scooter will not start"
    assert ticket.customer_id == customer.user_id
    assert ticket.response_text is None


def test_submit_rejects_blank_and_admins(tickets, customer, admin):
    from utils.error_handling import AuthorizationError, ValidationError

    with pytest.raises(ValidationError):
        tickets.submit(customer, "   ")
    with pytest.raises(AuthorizationError):
        tickets.submit(admin, "Admins do not file tickets")


def test_respond_then_re_respond_then_close(tickets, customer, admin):
    from models.ticket import TicketStatus

    ticket = tickets.submit(customer, "Where is my order?")

    answered = tickets.respond(admin, ticket.id, "Shipped yesterday.")
    assert answered.status == TicketStatus.ANSWERED
    assert answered.response_text == "Shipped yesterday."

    edited = tickets.respond(admin, ticket.id, "Shipped yesterday, arriving Friday.")
    assert edited.status == TicketStatus.ANSWERED
    assert edited.response_text == "Shipped yesterday, arriving Friday."

    closed = tickets.close(admin, ticket.id)
    assert closed.status == TicketStatus.CLOSED
    assert closed.response_text == "Shipped yesterday, arriving Friday."


def test_open_ticket_can_close_without_response(tickets, customer, admin):
    from models.ticket import TicketStatus

    ticket = tickets.submit(customer, "Never mind")

    assert tickets.close(admin, ticket.id).status == TicketStatus.CLOSED


def test_closed_is_terminal(tickets, customer, admin):
    from utils.error_handling import InvalidStateError

    ticket = tickets.submit(customer, "Question")
    tickets.close(admin, ticket.id)

    with pytest.raises(InvalidStateError):
        tickets.respond(admin, ticket.id, "Too late")
    with pytest.raises(InvalidStateError):
        tickets.close(admin, ticket.id)
    assert tickets.get(admin, ticket.id).response_text is None


def test_respond_validation(tickets, customer, admin):
    from models.ticket import TicketStatus
    from utils.error_handling import AuthorizationError, NotFoundError, ValidationError

    ticket = tickets.submit(customer, "Question")

    with pytest.raises(ValidationError):
        tickets.respond(admin, ticket.id, "  ")
    with pytest.raises(AuthorizationError):
        tickets.respond(customer, ticket.id, "I answer myself")
    with pytest.raises(NotFoundError):
        tickets.respond(admin, "missing", "Answer")
    assert tickets.get(customer, ticket.id).status == TicketStatus.OPEN


def test_get_enforces_ownership(tickets, customer, other_customer, admin):
    from utils.error_handling import AuthorizationError, NotFoundError

    ticket = tickets.submit(customer, "Question")

    assert tickets.get(customer, ticket.id).id == ticket.id
    assert tickets.get(admin, ticket.id).id == ticket.id
    with pytest.raises(AuthorizationError):
        tickets.get(other_customer, ticket.id)
    with pytest.raises(NotFoundError):
        tickets.get(admin, "missing")


def test_list_scoping_and_filters(portal, tickets, customer, other_customer, admin):
    from models.identity import Profile
    from models.ticket import TicketFilter, TicketStatus

    portal.profiles.upsert(Profile(user_id=customer.user_id, first_name="Ada", last_name="Lovelace"))
    portal.profiles.upsert(Profile(user_id=other_customer.user_id, first_name="Alan", last_name="Turing"))

    first = tickets.submit(customer, "Brakes squeak")
    second = tickets.submit(customer, "Battery drains")
    third = tickets.submit(other_customer, "App login fails")
    tickets.respond(admin, first.id, "Adjust the brake pads")

    assert [t.id for t in tickets.list(admin)] == [third.id, second.id, first.id]
    assert [t.id for t in tickets.list(customer)] == [second.id, first.id]

    answered = tickets.list(admin, TicketFilter(status=TicketStatus.ANSWERED))
    assert [t.id for t in answered] == [first.id]

    by_response = tickets.list(admin, TicketFilter(search_text="brake pads"))
    assert [t.id for t in by_response] == [first.id]

    by_name = tickets.list(admin, TicketFilter(search_text="turing"))
    assert [t.id for t in by_name] == [third.id]

    scoped = tickets.list(customer, TicketFilter(search_text="login"))
    assert scoped == []


def test_stats(portal, tickets, customer, other_customer, admin):
    from models.identity import Profile, Role
    from utils.error_handling import AuthorizationError

    portal.profiles.upsert(Profile(user_id=customer.user_id, first_name="Ada", last_name="L"))
    portal.profiles.upsert(Profile(user_id=other_customer.user_id, first_name="Alan", last_name="T"))
    portal.profiles.upsert(Profile(user_id=admin.user_id, first_name="Root", last_name="", role=Role.ADMIN))
    portal.knowledge_base.add(admin, "Question", "Answer")

    submitted = [tickets.submit(customer, f"Question {i}") for i in range(7)]
    tickets.close(admin, submitted[0].id)

    stats = tickets.stats(admin)

    assert stats.total_customers == 2
    assert stats.open_tickets == 6
    assert stats.knowledge_entries == 1
    assert [t.id for t in stats.recent_tickets] == [t.id for t in reversed(submitted)][:5]

    with pytest.raises(AuthorizationError):
        tickets.stats(customer)


def test_concurrent_respond_and_close_are_serialized(tickets, customer, admin):
    from models.ticket import TicketStatus
    from utils.error_handling import InvalidStateError

    for _ in range(20):
        ticket = tickets.submit(customer, "Race")
        outcomes = []
        barrier = threading.Barrier(2)

        def respond():
            barrier.wait()
            try:
                tickets.respond(admin, ticket.id, "Answer")
                outcomes.append("respond")
            except InvalidStateError:
                outcomes.append("respond-rejected")

        def close():
            barrier.wait()
            tickets.close(admin, ticket.id)
            outcomes.append("close")

        threads = [threading.Thread(target=respond), threading.Thread(target=close)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = tickets.get(admin, ticket.id)
        assert final.status == TicketStatus.CLOSED
        if "respond" in outcomes:
            assert final.response_text == "Answer"
        else:
            assert final.response_text is None


def test_concurrent_responses_keep_the_last_write(tickets, customer, admin):
    from models.ticket import TicketStatus

    for _ in range(20):
        ticket = tickets.submit(customer, "Two agents")
        results = []
        barrier = threading.Barrier(2)

        def respond(text):
            barrier.wait()
            results.append(tickets.respond(admin, ticket.id, text))

        threads = [
            threading.Thread(target=respond, args=("First answer",)),
            threading.Thread(target=respond, args=("Second answer",)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = tickets.get(admin, ticket.id)
        assert len(results) == 2
        assert final.status == TicketStatus.ANSWERED
        assert final.response_text in ("First answer", "Second answer")
        for result in results:
            assert final.updated_at >= result.updated_at
        latest = [r.response_text for r in results if r.updated_at == final.updated_at]
        assert final.response_text in latest
