"""
Knowledge base service.

Admin-curated question/answer entries. Every write is admin-only and fails
closed; reads serve both the help center and the chat matcher.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from models.identity import Principal, Role
from models.knowledge import HelpCenterView, KnowledgeEntry
from repositories.base import KnowledgeRepository
from utils.clock import utcnow
from utils.error_handling import NotFoundError
from utils.identity import require_role
from utils.logging_config import get_logger
from utils.validators import optional_text, require_text

logger = get_logger(__name__)


def _category_sort_key(entry: KnowledgeEntry):
    # Uncategorized sorts after every named category, as Postgres orders NULLs.
    return (entry.category is None, entry.category or "", entry.sequence)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


class KnowledgeBase:
    """CRUD and read views over knowledge entries."""

    def __init__(self, repository: KnowledgeRepository):
        self.repository = repository

    def list_active(self) -> List[KnowledgeEntry]:
        """Active entries by category ascending, then creation order."""
        return sorted(self.repository.list(active_only=True), key=_category_sort_key)

    def active_in_creation_order(self) -> List[KnowledgeEntry]:
        """Active entries in creation order, as the matcher walks them."""
        return self.repository.list(active_only=True)

    def list_all(self, search_text: Optional[str] = None) -> List[KnowledgeEntry]:
        """Admin management view: newest first, optional text search."""
        entries = sorted(self.repository.list(), key=lambda e: e.sequence, reverse=True)
        term = (search_text or "").strip().lower()
        if not term:
            return entries
        return [
            e
            for e in entries
            if _contains(e.question, term)
            or _contains(e.answer, term)
            or _contains(e.category, term)
        ]

    def get(self, entry_id: str) -> KnowledgeEntry:
        entry = self.repository.get(entry_id)
        if entry is None:
            raise NotFoundError("Knowledge entry not found", resource="knowledge_entry")
        return entry

    def count(self) -> int:
        return self.repository.count()

    def add(
        self,
        caller: Principal,
        question: str,
        answer: str,
        category: Optional[str] = None,
    ) -> KnowledgeEntry:
        require_role(caller, Role.ADMIN)
        now = utcnow()
        entry = KnowledgeEntry(
            id=str(uuid.uuid4()),
            question=require_text(question, "question"),
            answer=require_text(answer, "answer"),
            category=optional_text(category),
            active=True,
            created_by=caller.user_id,
            created_at=now,
            updated_at=now,
        )
        stored = self.repository.add(entry)
        logger.info("Knowledge entry added", extra={"entry_id": stored.id})
        return stored

    def update(
        self,
        caller: Principal,
        entry_id: str,
        question: Optional[str] = None,
        answer: Optional[str] = None,
        category: Optional[str] = None,
    ) -> KnowledgeEntry:
        """Edit text and/or category; omitted fields are left unchanged."""
        require_role(caller, Role.ADMIN)
        changes = {}
        if question is not None:
            changes["question"] = require_text(question, "question")
        if answer is not None:
            changes["answer"] = require_text(answer, "answer")
        if category is not None:
            changes["category"] = optional_text(category)

        def apply(entry: KnowledgeEntry) -> Optional[KnowledgeEntry]:
            if not changes:
                return None
            return entry.model_copy(update={**changes, "updated_at": utcnow()})

        updated = self.repository.update(entry_id, apply)
        if updated is None:
            raise NotFoundError("Knowledge entry not found", resource="knowledge_entry")
        logger.info("Knowledge entry updated", extra={"entry_id": entry_id})
        return updated

    def set_active(self, caller: Principal, entry_id: str, active: bool) -> None:
        """Toggle visibility; repeating the current value is a no-op."""
        require_role(caller, Role.ADMIN)

        def apply(entry: KnowledgeEntry) -> Optional[KnowledgeEntry]:
            if entry.active == active:
                return None
            return entry.model_copy(update={"active": active, "updated_at": utcnow()})

        if self.repository.update(entry_id, apply) is None:
            raise NotFoundError("Knowledge entry not found", resource="knowledge_entry")
        logger.info("Knowledge entry toggled", extra={"entry_id": entry_id, "active": active})

    def remove(self, caller: Principal, entry_id: str) -> None:
        """Irreversibly delete an entry."""
        require_role(caller, Role.ADMIN)
        if not self.repository.delete(entry_id):
            raise NotFoundError("Knowledge entry not found", resource="knowledge_entry")
        logger.info("Knowledge entry removed", extra={"entry_id": entry_id})

    def help_center(
        self, search_text: Optional[str] = None, category: Optional[str] = None
    ) -> HelpCenterView:
        """Active entries grouped by category for the help center page."""
        active = self.list_active()
        categories = sorted({e.category for e in active if e.category})

        term = (search_text or "").strip().lower()
        selected = (category or "").strip()
        view = HelpCenterView(categories=categories)
        for entry in active:
            if term and not (_contains(entry.question, term) or _contains(entry.answer, term)):
                continue
            if selected and entry.category != selected:
                continue
            if entry.category:
                view.categorized.setdefault(entry.category, []).append(entry)
            else:
                view.uncategorized.append(entry)
        return view
