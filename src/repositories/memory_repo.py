"""
In-memory repositories.

Used for local runs and unit tests, and as the fallback when no database is
configured. Each store hands out copies so callers never alias stored state.
"""

from __future__ import annotations

import itertools
from collections import OrderedDict
from threading import Lock, RLock
from typing import Callable, Dict, Iterable, List, Optional

from models.conversation import Conversation, Message
from models.identity import Profile, Role
from models.knowledge import KnowledgeEntry
from models.ticket import Ticket, TicketStatus
from repositories.base import (
    ConversationRepository,
    KnowledgeRepository,
    ProfileRepository,
    TicketRepository,
)
from utils.clock import utcnow


class _KeyedLocks:
    """Lazily created lock per aggregate id."""

    def __init__(self) -> None:
        self._locks: Dict[str, Lock] = {}
        self._guard = Lock()

    def for_key(self, key: str) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            return lock

    def discard(self, key: str) -> None:
        with self._guard:
            self._locks.pop(key, None)


class InMemoryKnowledgeRepository(KnowledgeRepository):
    """Readers take a snapshot; writers are serialized per entry id."""

    def __init__(self) -> None:
        self._entries: "OrderedDict[str, KnowledgeEntry]" = OrderedDict()
        self._guard = RLock()
        self._locks = _KeyedLocks()
        self._seq = itertools.count(1)

    def add(self, entry: KnowledgeEntry) -> KnowledgeEntry:
        with self._guard:
            stored = entry.model_copy(update={"sequence": next(self._seq)})
            self._entries[stored.id] = stored
            return stored.model_copy()

    def get(self, entry_id: str) -> Optional[KnowledgeEntry]:
        with self._guard:
            entry = self._entries.get(entry_id)
            return entry.model_copy() if entry else None

    def list(self, active_only: bool = False) -> List[KnowledgeEntry]:
        with self._guard:
            snapshot = list(self._entries.values())
        return [e.model_copy() for e in snapshot if e.active or not active_only]

    def update(
        self,
        entry_id: str,
        mutator: Callable[[KnowledgeEntry], Optional[KnowledgeEntry]],
    ) -> Optional[KnowledgeEntry]:
        with self._locks.for_key(entry_id):
            current = self.get(entry_id)
            if current is None:
                return None
            changed = mutator(current)
            if changed is None:
                return current
            with self._guard:
                if entry_id not in self._entries:
                    return None
                self._entries[entry_id] = changed.model_copy(
                    update={"sequence": current.sequence}
                )
            return changed.model_copy()

    def delete(self, entry_id: str) -> bool:
        with self._locks.for_key(entry_id):
            with self._guard:
                removed = self._entries.pop(entry_id, None)
        self._locks.discard(entry_id)
        return removed is not None

    def count(self) -> int:
        with self._guard:
            return len(self._entries)


class InMemoryConversationRepository(ConversationRepository):
    """One lock guards all threads; appends are short and never wait on I/O."""

    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._lock = Lock()
        self._seq = itertools.count(1)

    def create(self, conversation: Conversation) -> Conversation:
        with self._lock:
            self._conversations[conversation.id] = conversation.model_copy()
            self._messages[conversation.id] = []
        return conversation.model_copy()

    def get(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return conversation.model_copy() if conversation else None

    def list_for_customer(self, customer_id: str) -> List[Conversation]:
        with self._lock:
            owned = [
                c.model_copy()
                for c in self._conversations.values()
                if c.customer_id == customer_id
            ]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    def add_message(self, message: Message) -> Optional[Message]:
        with self._lock:
            conversation = self._conversations.get(message.conversation_id)
            if conversation is None:
                return None
            now = utcnow()
            stored = message.model_copy(
                update={"sequence": next(self._seq), "created_at": now}
            )
            self._messages[message.conversation_id].append(stored)
            conversation.updated_at = now
            return stored

    def list_messages(self, conversation_id: str) -> Optional[List[Message]]:
        with self._lock:
            messages = self._messages.get(conversation_id)
            return list(messages) if messages is not None else None

    def rename_if_title(
        self, conversation_id: str, expected_title: str, new_title: str
    ) -> Optional[bool]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            if conversation.title != expected_title:
                return False
            conversation.title = new_title
            conversation.updated_at = utcnow()
            return True

    def delete(self, conversation_id: str) -> bool:
        with self._lock:
            self._messages.pop(conversation_id, None)
            return self._conversations.pop(conversation_id, None) is not None


class InMemoryTicketRepository(TicketRepository):
    """Tickets keyed by id with a lock per ticket for transitions."""

    def __init__(self) -> None:
        self._tickets: Dict[str, Ticket] = {}
        self._guard = Lock()
        self._locks = _KeyedLocks()
        self._seq = itertools.count(1)

    def add(self, ticket: Ticket) -> Ticket:
        with self._guard:
            stored = ticket.model_copy(update={"sequence": next(self._seq)})
            self._tickets[stored.id] = stored
            return stored.model_copy()

    def get(self, ticket_id: str) -> Optional[Ticket]:
        with self._guard:
            ticket = self._tickets.get(ticket_id)
            return ticket.model_copy() if ticket else None

    def list(self, customer_id: Optional[str] = None) -> List[Ticket]:
        with self._guard:
            snapshot = [
                t.model_copy()
                for t in self._tickets.values()
                if customer_id is None or t.customer_id == customer_id
            ]
        return sorted(snapshot, key=lambda t: (t.created_at, t.sequence), reverse=True)

    def update(self, ticket_id: str, mutator: Callable[[Ticket], Ticket]) -> Optional[Ticket]:
        with self._locks.for_key(ticket_id):
            current = self.get(ticket_id)
            if current is None:
                return None
            changed = mutator(current).model_copy(update={"sequence": current.sequence})
            with self._guard:
                self._tickets[ticket_id] = changed
            return changed.model_copy()

    def count_by_status(self, status: TicketStatus) -> int:
        with self._guard:
            return sum(1 for t in self._tickets.values() if t.status == status)


class InMemoryProfileRepository(ProfileRepository):
    def __init__(self) -> None:
        self._profiles: Dict[str, Profile] = {}
        self._lock = Lock()

    def upsert(self, profile: Profile) -> Profile:
        with self._lock:
            self._profiles[profile.user_id] = profile.model_copy()
        return profile

    def get(self, user_id: str) -> Optional[Profile]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return profile.model_copy() if profile else None

    def display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        wanted = set(user_ids)
        with self._lock:
            return {
                uid: p.display_name for uid, p in self._profiles.items() if uid in wanted
            }

    def count(self, role: Role) -> int:
        with self._lock:
            return sum(1 for p in self._profiles.values() if p.role == role)
