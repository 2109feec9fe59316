"""Chat conversation models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SenderType(str, Enum):
    """Author of a chat message."""

    CUSTOMER = "customer"
    SYSTEM = "system"


class Attachment(BaseModel):
    """File reference handed in by the attachment storage boundary."""

    file_name: str
    file_url: str


class Conversation(BaseModel):
    """A customer's support chat thread."""

    id: str
    customer_id: str
    title: str
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    """Single chat message; immutable once appended."""

    model_config = ConfigDict(frozen=True)

    id: str
    conversation_id: str
    sender_type: SenderType
    text: str
    attachment_name: Optional[str] = None
    attachment_ref: Optional[str] = None
    created_at: datetime
    sequence: int


class SendMessageRequest(BaseModel):
    """Inbound payload for POST /conversations/{id}/messages."""

    text: str = ""
    attachment: Optional[Attachment] = None


class ReplyJob(BaseModel):
    """Deferred auto-reply work item, also the SQS message body."""

    conversation_id: str
    text: str
    customer_message_id: str
    requested_at: datetime
