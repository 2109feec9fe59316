"""
Runtime configuration for the portal services.

Values come from Lambda environment variables; defaults keep local runs and
tests working without a database or queue.
"""

from dataclasses import dataclass
import os

DEFAULT_CONVERSATION_TITLE = "New Conversation"
WELCOME_MESSAGE = (
    "Hello! I'm your Eco Rider support assistant. How can I help you today?"
)
FALLBACK_MESSAGE = (
    "Thank you for your message. A support agent will review your inquiry and "
    "respond shortly. In the meantime, you can check our Help Center for "
    "immediate answers to common questions."
)


@dataclass
class PortalSettings:
    """Application settings for the support portal core."""

    environment: str = "dev"

    # Storage: "memory" or "postgres"
    storage_backend: str = "memory"
    database_url: str = ""
    db_secret_arn: str = ""

    # Auto-responder scheduling: "timer", "sqs" or "manual"
    scheduler_backend: str = "timer"
    auto_reply_delay_seconds: float = 1.0
    auto_reply_queue_url: str = ""

    # Attachments (10 MB cap, matching the upload form)
    attachments_bucket: str = ""
    max_attachment_bytes: int = 10 * 1024 * 1024

    # Conversation copy
    default_conversation_title: str = DEFAULT_CONVERSATION_TITLE
    welcome_message: str = WELCOME_MESSAGE
    fallback_message: str = FALLBACK_MESSAGE
    title_max_length: int = 50

    @classmethod
    def from_environment(cls) -> "PortalSettings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        database_url = os.environ.get("DATABASE_URL", "")
        db_secret_arn = os.environ.get("DB_SECRET_ARN", "")
        default_backend = "postgres" if (database_url or db_secret_arn) else "memory"

        return cls(
            environment=env,
            storage_backend=os.environ.get("STORAGE_BACKEND", default_backend).lower(),
            database_url=database_url,
            db_secret_arn=db_secret_arn,
            scheduler_backend=os.environ.get("SCHEDULER_BACKEND", "timer").lower(),
            auto_reply_delay_seconds=float(
                os.environ.get("AUTO_REPLY_DELAY_SECONDS", "1.0")
            ),
            auto_reply_queue_url=os.environ.get("AUTO_REPLY_QUEUE_URL", ""),
            attachments_bucket=os.environ.get("ATTACHMENTS_BUCKET", ""),
            max_attachment_bytes=int(
                os.environ.get("MAX_ATTACHMENT_BYTES", str(10 * 1024 * 1024))
            ),
            default_conversation_title=os.environ.get(
                "DEFAULT_CONVERSATION_TITLE", DEFAULT_CONVERSATION_TITLE
            ),
            welcome_message=os.environ.get("WELCOME_MESSAGE", WELCOME_MESSAGE),
            fallback_message=os.environ.get("FALLBACK_MESSAGE", FALLBACK_MESSAGE),
            title_max_length=int(os.environ.get("TITLE_MAX_LENGTH", "50")),
        )
