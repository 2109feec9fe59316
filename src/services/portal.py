"""
Composition root for the portal services.

Handlers share one lazily built ``SupportPortal`` per warm Lambda container.
The in-memory backend is the fallback when no database is configured, so the
sample runs locally without Postgres.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from repositories.base import ProfileRepository
from repositories.memory_repo import (
    InMemoryConversationRepository,
    InMemoryKnowledgeRepository,
    InMemoryProfileRepository,
    InMemoryTicketRepository,
)
from services.auto_responder import AutoResponder
from services.conversation_store import ConversationStore
from services.knowledge_base import KnowledgeBase
from services.matching_engine import MatchingEngine
from services.scheduler import ManualScheduler, Scheduler, SqsDelayScheduler, TimerScheduler
from services.ticket_lifecycle import TicketLifecycle
from utils.logging_config import get_logger
from utils.settings import PortalSettings

logger = get_logger(__name__)


@dataclass
class SupportPortal:
    """Every service the HTTP and queue handlers need."""

    settings: PortalSettings
    knowledge_base: KnowledgeBase
    matcher: MatchingEngine
    conversations: ConversationStore
    auto_responder: AutoResponder
    tickets: TicketLifecycle
    profiles: ProfileRepository
    scheduler: Scheduler


def build_scheduler(settings: PortalSettings) -> Scheduler:
    backend = settings.scheduler_backend
    if backend == "manual":
        return ManualScheduler()
    if backend == "sqs":
        if not settings.auto_reply_queue_url:
            raise RuntimeError("AUTO_REPLY_QUEUE_URL is required for the sqs scheduler")
        return SqsDelayScheduler(settings.auto_reply_queue_url)
    return TimerScheduler()


def build_portal(
    settings: Optional[PortalSettings] = None,
    scheduler: Optional[Scheduler] = None,
    engine=None,
) -> SupportPortal:
    """Wire repositories and services for the configured backends."""
    settings = settings or PortalSettings.from_environment()

    if settings.storage_backend == "postgres" or engine is not None:
        from repositories.postgres_repo import (
            SqlConversationRepository,
            SqlKnowledgeRepository,
            SqlProfileRepository,
            SqlTicketRepository,
            create_schema,
            get_db_engine,
        )

        engine = engine or get_db_engine(settings.database_url or None)
        if engine is None:
            raise RuntimeError("postgres storage selected but no database is configured")
        create_schema(engine)
        knowledge_repo = SqlKnowledgeRepository(engine)
        conversation_repo = SqlConversationRepository(engine)
        ticket_repo = SqlTicketRepository(engine)
        profile_repo = SqlProfileRepository(engine)
    else:
        knowledge_repo = InMemoryKnowledgeRepository()
        conversation_repo = InMemoryConversationRepository()
        ticket_repo = InMemoryTicketRepository()
        profile_repo = InMemoryProfileRepository()

    scheduler = scheduler or build_scheduler(settings)
    knowledge_base = KnowledgeBase(knowledge_repo)
    matcher = MatchingEngine(knowledge_base)
    conversations = ConversationStore(
        conversation_repo,
        default_title=settings.default_conversation_title,
        welcome_message=settings.welcome_message,
        title_max_length=settings.title_max_length,
    )
    auto_responder = AutoResponder(
        conversations,
        matcher,
        scheduler,
        delay_seconds=settings.auto_reply_delay_seconds,
        fallback_message=settings.fallback_message,
    )
    tickets = TicketLifecycle(ticket_repo, profile_repo, knowledge_base)

    logger.info(
        "Portal services built",
        extra={
            "storage_backend": "postgres" if engine is not None else "memory",
            "scheduler": type(scheduler).__name__,
        },
    )
    return SupportPortal(
        settings=settings,
        knowledge_base=knowledge_base,
        matcher=matcher,
        conversations=conversations,
        auto_responder=auto_responder,
        tickets=tickets,
        profiles=profile_repo,
        scheduler=scheduler,
    )


_portal: Optional[SupportPortal] = None


def get_portal() -> SupportPortal:
    """Lazy-load the shared portal (survives warm invocations)."""
    global _portal
    if _portal is None:
        _portal = build_portal()
    return _portal


def set_portal(portal: Optional[SupportPortal]) -> None:
    """Install or clear the shared portal (tests and custom wiring)."""
    global _portal
    _portal = portal
