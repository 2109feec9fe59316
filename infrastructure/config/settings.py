"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Database Configuration (Cost-optimized)
    db_instance_class: str = "t3.micro"  # Free tier eligible
    db_allocated_storage: int = 20  # Minimum GB

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30

    # Auto-responder
    auto_reply_delay_seconds: int = 1
    log_level: str = "INFO"

    # Attachments
    max_attachment_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        region = os.environ.get("AWS_REGION", "eu-west-2")
        delay = int(os.environ.get("AUTO_REPLY_DELAY_SECONDS", "1"))

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                aws_region=region,
                db_instance_class="t3.small",  # Upgrade for prod
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
                auto_reply_delay_seconds=delay,
            )

        return cls(
            environment=env,
            aws_region=region,
            auto_reply_delay_seconds=delay,
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
