"""Pydantic models for the portal core and its API payloads."""

from models.conversation import (  # noqa: F401
    Attachment,
    Conversation,
    Message,
    ReplyJob,
    SendMessageRequest,
    SenderType,
)
from models.identity import Principal, Profile, Role  # noqa: F401
from models.knowledge import (  # noqa: F401
    ActiveToggle,
    HelpCenterView,
    KnowledgeEntry,
    KnowledgeEntryCreate,
    KnowledgeEntryUpdate,
)
from models.ticket import (  # noqa: F401
    DashboardStats,
    Ticket,
    TicketFilter,
    TicketResponseRequest,
    TicketStatus,
    TicketSubmission,
)
