"""
Repository contracts shared by the in-memory and SQL backends.

Mutations that read-validate-write a single aggregate go through
``update(id, mutator)`` so each backend can make the whole step atomic
(a per-id lock in memory, a row lock inside a transaction in SQL).
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional

from models.conversation import Conversation, Message
from models.identity import Profile, Role
from models.knowledge import KnowledgeEntry
from models.ticket import Ticket, TicketStatus


class KnowledgeRepository(ABC):
    """Storage for knowledge entries, iterated in creation order."""

    @abstractmethod
    def add(self, entry: KnowledgeEntry) -> KnowledgeEntry:
        ...

    @abstractmethod
    def get(self, entry_id: str) -> Optional[KnowledgeEntry]:
        ...

    @abstractmethod
    def list(self, active_only: bool = False) -> List[KnowledgeEntry]:
        ...

    @abstractmethod
    def update(
        self,
        entry_id: str,
        mutator: Callable[[KnowledgeEntry], Optional[KnowledgeEntry]],
    ) -> Optional[KnowledgeEntry]:
        """Apply mutator atomically; return None if the entry does not exist.

        A mutator returning None means "no change" and nothing is written.
        """

    @abstractmethod
    def delete(self, entry_id: str) -> bool:
        ...

    @abstractmethod
    def count(self) -> int:
        ...


class ConversationRepository(ABC):
    """Storage for conversations and their append-only messages."""

    @abstractmethod
    def create(self, conversation: Conversation) -> Conversation:
        ...

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[Conversation]:
        ...

    @abstractmethod
    def list_for_customer(self, customer_id: str) -> List[Conversation]:
        """Most recently updated first."""

    @abstractmethod
    def add_message(self, message: Message) -> Optional[Message]:
        """Append a message, stamping sequence and created_at.

        Returns None when the owning conversation does not exist.
        """

    @abstractmethod
    def list_messages(self, conversation_id: str) -> Optional[List[Message]]:
        """Messages in append order, or None for an unknown conversation."""

    @abstractmethod
    def rename_if_title(
        self, conversation_id: str, expected_title: str, new_title: str
    ) -> Optional[bool]:
        """Compare-and-set the title; None for an unknown conversation."""

    @abstractmethod
    def delete(self, conversation_id: str) -> bool:
        ...


class TicketRepository(ABC):
    """Storage for support tickets."""

    @abstractmethod
    def add(self, ticket: Ticket) -> Ticket:
        ...

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[Ticket]:
        ...

    @abstractmethod
    def list(self, customer_id: Optional[str] = None) -> List[Ticket]:
        """Newest first, optionally restricted to one customer."""

    @abstractmethod
    def update(self, ticket_id: str, mutator: Callable[[Ticket], Ticket]) -> Optional[Ticket]:
        """Apply mutator atomically; exceptions from mutator abort the write."""

    @abstractmethod
    def count_by_status(self, status: TicketStatus) -> int:
        ...


class ProfileRepository(ABC):
    """Read side of the identity provider's profile table."""

    @abstractmethod
    def upsert(self, profile: Profile) -> Profile:
        ...

    @abstractmethod
    def get(self, user_id: str) -> Optional[Profile]:
        ...

    @abstractmethod
    def display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        ...

    @abstractmethod
    def count(self, role: Role) -> int:
        ...
