"""Conversation store: chat threads and their append-only message history."""

from __future__ import annotations

import uuid
from typing import Callable, List, Optional

from models.conversation import Attachment, Conversation, Message, SenderType
from models.identity import Principal
from repositories.base import ConversationRepository
from utils.clock import utcnow
from utils.error_handling import AuthorizationError, NotFoundError
from utils.logging_config import get_logger
from utils.settings import DEFAULT_CONVERSATION_TITLE, WELCOME_MESSAGE

logger = get_logger(__name__)

ELLIPSIS = "..."


def truncate_title(text: str, max_length: int = 50) -> str:
    """First max_length characters plus an ellipsis when longer."""
    return text if len(text) <= max_length else text[:max_length] + ELLIPSIS


class ConversationStore:
    """Owns conversations and guarantees per-conversation message order."""

    def __init__(
        self,
        repository: ConversationRepository,
        default_title: str = DEFAULT_CONVERSATION_TITLE,
        welcome_message: str = WELCOME_MESSAGE,
        title_max_length: int = 50,
    ):
        self.repository = repository
        self.default_title = default_title
        self.welcome_message = welcome_message
        self.title_max_length = title_max_length
        self._delete_listeners: List[Callable[[str], None]] = []

    def create_conversation(self, customer_id: str) -> Conversation:
        """Open a thread with the default title and a welcome message."""
        now = utcnow()
        conversation = self.repository.create(
            Conversation(
                id=str(uuid.uuid4()),
                customer_id=customer_id,
                title=self.default_title,
                created_at=now,
                updated_at=now,
            )
        )
        self.append_message(conversation.id, SenderType.SYSTEM, self.welcome_message)
        logger.info(
            "Conversation created",
            extra={"conversation_id": conversation.id, "customer_id": customer_id},
        )
        return self.get_conversation(conversation.id)

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.repository.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found", resource="conversation")
        return conversation

    def get_for(self, caller: Principal, conversation_id: str) -> Conversation:
        """Fetch a conversation the caller owns (admins may read any)."""
        conversation = self.get_conversation(conversation_id)
        if not caller.is_admin and conversation.customer_id != caller.user_id:
            raise AuthorizationError("Conversation belongs to another customer")
        return conversation

    def list_conversations(self, customer_id: str) -> List[Conversation]:
        return self.repository.list_for_customer(customer_id)

    def append_message(
        self,
        conversation_id: str,
        sender_type: SenderType,
        text: str,
        attachment: Optional[Attachment] = None,
    ) -> Message:
        message = self.repository.add_message(
            Message(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                sender_type=sender_type,
                text=text,
                attachment_name=attachment.file_name if attachment else None,
                attachment_ref=attachment.file_url if attachment else None,
                created_at=utcnow(),
                sequence=0,
            )
        )
        if message is None:
            raise NotFoundError("Conversation not found", resource="conversation")
        return message

    def list_messages(self, conversation_id: str) -> List[Message]:
        messages = self.repository.list_messages(conversation_id)
        if messages is None:
            raise NotFoundError("Conversation not found", resource="conversation")
        return messages

    def rename_if_default(self, conversation_id: str, new_title: str) -> bool:
        """Adopt new_title only while the placeholder title is still in place."""
        title = truncate_title(new_title.strip(), self.title_max_length)
        if not title:
            return False
        renamed = self.repository.rename_if_title(conversation_id, self.default_title, title)
        if renamed is None:
            raise NotFoundError("Conversation not found", resource="conversation")
        return renamed

    def on_delete(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the id of each deleted conversation."""
        self._delete_listeners.append(listener)

    def delete_conversation(self, conversation_id: str) -> None:
        for listener in self._delete_listeners:
            listener(conversation_id)
        if not self.repository.delete(conversation_id):
            raise NotFoundError("Conversation not found", resource="conversation")
        logger.info("Conversation deleted", extra={"conversation_id": conversation_id})
