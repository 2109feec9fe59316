"""
Auto-responder for customer chat messages.

Sending a message is synchronous: the customer message is stored, the thread
may be renamed, and a reply job is handed to the scheduler. The reply itself
(matched answer or fallback) is appended later by ``deliver_reply``, either
from the in-process scheduler or from the SQS consumer Lambda. Nothing that
goes wrong during delivery reaches the original sender.
"""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
from typing import Dict, List, Optional

from models.conversation import Attachment, ReplyJob, SenderType
from models.identity import Principal, Role
from services.conversation_store import ConversationStore
from services.matching_engine import MatchingEngine
from services.scheduler import ScheduledTask, Scheduler
from utils.clock import utcnow
from utils.error_handling import AuthorizationError, NotFoundError, ValidationError
from utils.identity import require_role
from utils.logging_config import get_logger
from utils.settings import FALLBACK_MESSAGE

logger = get_logger(__name__)


class AutoResponder:
    """Store customer messages and schedule the automated reply."""

    def __init__(
        self,
        conversations: ConversationStore,
        matcher: MatchingEngine,
        scheduler: Scheduler,
        delay_seconds: float = 1.0,
        fallback_message: str = FALLBACK_MESSAGE,
    ):
        self.conversations = conversations
        self.matcher = matcher
        self.scheduler = scheduler
        self.delay_seconds = delay_seconds
        self.fallback_message = fallback_message
        self._pending: Dict[str, List[ScheduledTask]] = defaultdict(list)
        self._lock = Lock()
        conversations.on_delete(self.cancel_pending)

    def on_customer_message(
        self,
        caller: Principal,
        conversation_id: str,
        text: str,
        attachment: Optional[Attachment] = None,
    ) -> None:
        require_role(caller, Role.CUSTOMER)
        conversation = self.conversations.get_conversation(conversation_id)
        if conversation.customer_id != caller.user_id:
            raise AuthorizationError("Conversation belongs to another customer")

        message_text = (text or "").strip()
        if not message_text and attachment is None:
            raise ValidationError("text must not be blank", field="text")

        stored = self.conversations.append_message(
            conversation_id,
            SenderType.CUSTOMER,
            message_text or f"Uploaded file: {attachment.file_name}",
            attachment,
        )

        # Attachment-only messages get neither a title nor an auto reply.
        if not message_text:
            return

        if self.conversations.rename_if_default(conversation_id, message_text):
            logger.info("Conversation titled", extra={"conversation_id": conversation_id})

        # The message is already stored; scheduling failures are logged, not raised.
        try:
            job = ReplyJob(
                conversation_id=conversation_id,
                text=message_text,
                customer_message_id=stored.id,
                requested_at=utcnow(),
            )
            task = self.scheduler.schedule(self.delay_seconds, job, self.deliver_reply)
        except Exception:
            logger.exception(
                "Auto-reply scheduling failed", extra={"conversation_id": conversation_id}
            )
            return

        # Checked under the lock that _forget takes, so a reply that already
        # fired is never registered as pending.
        with self._lock:
            if task.pending:
                self._pending[conversation_id].append(task)

    def deliver_reply(self, job: ReplyJob) -> None:
        """Append the matched answer or the fallback; never raises."""
        self._forget(job)
        try:
            entry = self.matcher.match(job.text)
            reply = entry.answer if entry else self.fallback_message
            self.conversations.append_message(job.conversation_id, SenderType.SYSTEM, reply)
            logger.info(
                "Auto-reply delivered",
                extra={
                    "conversation_id": job.conversation_id,
                    "matched_entry_id": entry.id if entry else None,
                },
            )
        except NotFoundError:
            logger.info(
                "Auto-reply skipped, conversation gone",
                extra={"conversation_id": job.conversation_id},
            )
        except Exception:
            logger.exception(
                "Auto-reply failed", extra={"conversation_id": job.conversation_id}
            )

    def cancel_pending(self, conversation_id: str) -> int:
        """Cancel every reply still waiting for the given conversation."""
        with self._lock:
            tasks = self._pending.pop(conversation_id, [])
        cancelled = sum(1 for task in tasks if task.cancel())
        if cancelled:
            logger.info(
                "Pending auto-replies cancelled",
                extra={"conversation_id": conversation_id, "count": cancelled},
            )
        return cancelled

    def _forget(self, job: ReplyJob) -> None:
        with self._lock:
            tasks = self._pending.get(job.conversation_id)
            if not tasks:
                return
            remaining = [t for t in tasks if t.job.customer_message_id != job.customer_message_id]
            if remaining:
                self._pending[job.conversation_id] = remaining
            else:
                self._pending.pop(job.conversation_id, None)
