"""
Keyword matcher that picks an automated chat reply.

The rule is deliberately simple and must stay that way: an active entry
qualifies when any word of its question longer than three characters occurs
anywhere inside the lower-cased message (plain substring, so "charge" also
hits "recharged"). The first qualifying entry in creation order wins; there
is no scoring. Moving to best-match is a behaviour change, not a fix.
"""

from typing import Optional

from models.knowledge import KnowledgeEntry
from services.knowledge_base import KnowledgeBase

MIN_TOKEN_LENGTH = 4


def _qualifies(question: str, lowered_message: str) -> bool:
    return any(
        len(token) >= MIN_TOKEN_LENGTH and token in lowered_message
        for token in question.lower().split()
    )


class MatchingEngine:
    """Select at most one knowledge entry for a customer message."""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.knowledge_base = knowledge_base

    def match(self, message: str) -> Optional[KnowledgeEntry]:
        lowered = (message or "").lower()
        for entry in self.knowledge_base.active_in_creation_order():
            if _qualifies(entry.question, lowered):
                return entry
        return None
