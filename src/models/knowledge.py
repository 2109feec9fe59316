"""Knowledge base models."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class KnowledgeEntry(BaseModel):
    """Question/answer pair used by the help center and the chat matcher."""

    id: str
    question: str
    answer: str
    category: Optional[str] = None
    active: bool = True
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    sequence: int = 0


class KnowledgeEntryCreate(BaseModel):
    """Admin payload for a new entry."""

    question: str = ""
    answer: str = ""
    category: Optional[str] = None


class KnowledgeEntryUpdate(BaseModel):
    """Admin payload for editing an entry; omitted fields stay unchanged."""

    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None


class ActiveToggle(BaseModel):
    """Payload for POST /kb/{id}/active."""

    active: bool


class HelpCenterView(BaseModel):
    """Active entries grouped the way the help center renders them."""

    categories: List[str] = Field(default_factory=list)
    categorized: Dict[str, List[KnowledgeEntry]] = Field(default_factory=dict)
    uncategorized: List[KnowledgeEntry] = Field(default_factory=list)
