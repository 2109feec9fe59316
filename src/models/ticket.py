"""Support ticket (customer query) models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.conversation import Attachment


class TicketStatus(str, Enum):
    """Lifecycle states; closed is terminal."""

    OPEN = "open"
    ANSWERED = "answered"
    CLOSED = "closed"


class Ticket(BaseModel):
    """Customer-submitted support query."""

    id: str
    customer_id: str
    query_text: str
    response_text: Optional[str] = None
    status: TicketStatus = TicketStatus.OPEN
    attachment_name: Optional[str] = None
    attachment_ref: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    sequence: int = 0


class TicketFilter(BaseModel):
    """Listing filter; None means no restriction."""

    status: Optional[TicketStatus] = None
    search_text: Optional[str] = None


class TicketSubmission(BaseModel):
    """Inbound payload for POST /tickets."""

    query_text: str = ""
    attachment: Optional[Attachment] = None


class TicketResponseRequest(BaseModel):
    """Inbound payload for POST /tickets/{id}/respond."""

    response_text: str = ""


class DashboardStats(BaseModel):
    """Admin dashboard counters."""

    total_customers: int
    open_tickets: int
    knowledge_entries: int
    recent_tickets: List[Ticket] = Field(default_factory=list)
