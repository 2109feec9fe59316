"""
Ticket lifecycle: open -> answered -> closed.

``answered`` may be re-answered (response edit); ``closed`` is terminal.
Each transition runs as one atomic read-validate-write on the ticket, so
concurrent respond/close calls on the same ticket are serialized. Two
concurrent responds resolve last-writer-wins in the order the repository
grants the ticket lock.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from models.conversation import Attachment
from models.identity import Principal, Role
from models.ticket import DashboardStats, Ticket, TicketFilter, TicketStatus
from repositories.base import ProfileRepository, TicketRepository
from services.knowledge_base import KnowledgeBase
from utils.clock import utcnow
from utils.error_handling import AuthorizationError, InvalidStateError, NotFoundError
from utils.identity import require_role
from utils.logging_config import get_logger
from utils.validators import require_text

logger = get_logger(__name__)

RESPONDABLE = {TicketStatus.OPEN, TicketStatus.ANSWERED}
CLOSABLE = {TicketStatus.OPEN, TicketStatus.ANSWERED}
RECENT_TICKET_LIMIT = 5


class TicketLifecycle:
    """Customer query submission and the admin response workflow."""

    def __init__(
        self,
        repository: TicketRepository,
        profiles: ProfileRepository,
        knowledge_base: Optional[KnowledgeBase] = None,
    ):
        self.repository = repository
        self.profiles = profiles
        self.knowledge_base = knowledge_base

    def submit(
        self,
        caller: Principal,
        query_text: str,
        attachment: Optional[Attachment] = None,
    ) -> Ticket:
        require_role(caller, Role.CUSTOMER)
        text = require_text(query_text, "query_text")
        now = utcnow()
        ticket = self.repository.add(
            Ticket(
                id=str(uuid.uuid4()),
                customer_id=caller.user_id,
                query_text=text,
                status=TicketStatus.OPEN,
                attachment_name=attachment.file_name if attachment else None,
                attachment_ref=attachment.file_url if attachment else None,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Ticket submitted", extra={"ticket_id": ticket.id})
        return ticket

    def respond(self, caller: Principal, ticket_id: str, response_text: str) -> Ticket:
        require_role(caller, Role.ADMIN)
        text = require_text(response_text, "response_text")

        def apply(ticket: Ticket) -> Ticket:
            if ticket.status not in RESPONDABLE:
                raise InvalidStateError(
                    f"Cannot respond to a {ticket.status.value} ticket",
                    current=ticket.status.value,
                    attempted="respond",
                )
            return ticket.model_copy(
                update={
                    "response_text": text,
                    "status": TicketStatus.ANSWERED,
                    "updated_at": utcnow(),
                }
            )

        ticket = self._transition(ticket_id, apply)
        logger.info("Ticket answered", extra={"ticket_id": ticket_id})
        return ticket

    def close(self, caller: Principal, ticket_id: str) -> Ticket:
        require_role(caller, Role.ADMIN)

        def apply(ticket: Ticket) -> Ticket:
            if ticket.status not in CLOSABLE:
                raise InvalidStateError(
                    f"Cannot close a {ticket.status.value} ticket",
                    current=ticket.status.value,
                    attempted="close",
                )
            return ticket.model_copy(
                update={"status": TicketStatus.CLOSED, "updated_at": utcnow()}
            )

        ticket = self._transition(ticket_id, apply)
        logger.info("Ticket closed", extra={"ticket_id": ticket_id})
        return ticket

    def get(self, caller: Principal, ticket_id: str) -> Ticket:
        ticket = self.repository.get(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found", resource="ticket")
        if not caller.is_admin and ticket.customer_id != caller.user_id:
            raise AuthorizationError("Ticket belongs to another customer")
        return ticket

    def list(self, caller: Principal, ticket_filter: Optional[TicketFilter] = None) -> List[Ticket]:
        """Newest first; customers only ever see their own tickets."""
        ticket_filter = ticket_filter or TicketFilter()
        tickets = self.repository.list(None if caller.is_admin else caller.user_id)

        if ticket_filter.status is not None:
            tickets = [t for t in tickets if t.status == ticket_filter.status]

        term = (ticket_filter.search_text or "").strip().lower()
        if term:
            names = self.profiles.display_names({t.customer_id for t in tickets})
            tickets = [
                t
                for t in tickets
                if term in t.query_text.lower()
                or (t.response_text and term in t.response_text.lower())
                or term in names.get(t.customer_id, "").lower()
            ]
        return tickets

    def stats(self, caller: Principal) -> DashboardStats:
        """Counters for the admin dashboard."""
        require_role(caller, Role.ADMIN)
        return DashboardStats(
            total_customers=self.profiles.count(Role.CUSTOMER),
            open_tickets=self.repository.count_by_status(TicketStatus.OPEN),
            knowledge_entries=self.knowledge_base.count() if self.knowledge_base else 0,
            recent_tickets=self.repository.list()[:RECENT_TICKET_LIMIT],
        )

    def _transition(self, ticket_id: str, apply) -> Ticket:
        ticket = self.repository.update(ticket_id, apply)
        if ticket is None:
            raise NotFoundError("Ticket not found", resource="ticket")
        return ticket
