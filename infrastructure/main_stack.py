"""
Main CDK Stack for the Eco Rider support portal.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct, bundled_source
from infrastructure.constructs.event_pipeline import EventPipelineConstruct
from infrastructure.config.settings import Settings


class SupportPortalStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "support-portal")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "customer-support")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer: VPC, Postgres, attachments bucket.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )

        shared_env = {
            "ENVIRONMENT": settings.environment,
            "LOG_LEVEL": settings.log_level,
            "STORAGE_BACKEND": "postgres",
            "DB_SECRET_ARN": data_construct.db_secret.secret_arn,
            "ATTACHMENTS_BUCKET": data_construct.attachments_bucket.bucket_name,
            "MAX_ATTACHMENT_BYTES": str(settings.max_attachment_bytes),
            "AUTO_REPLY_DELAY_SECONDS": str(settings.auto_reply_delay_seconds),
        }
        code = bundled_source()

        # 2) Auto-reply queue and its consumer.
        event_construct = EventPipelineConstruct(
            self,
            "AutoReplyPipeline",
            environment=settings.environment,
            code=code,
            vpc=data_construct.vpc,
            shared_env=shared_env,
            reply_delay_seconds=settings.auto_reply_delay_seconds,
        )

        # 3) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            code=code,
            vpc=data_construct.vpc,
            shared_env={
                **shared_env,
                "AUTO_REPLY_QUEUE_URL": event_construct.queue.queue_url,
            },
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # Permissions for the API Lambda.
        data_construct.allow_from(api_construct.main_lambda)
        data_construct.db_secret.grant_read(api_construct.main_lambda)
        data_construct.attachments_bucket.grant_put(api_construct.main_lambda)
        event_construct.queue.grant_send_messages(api_construct.main_lambda)

        # Permissions for the reply consumer.
        data_construct.allow_from(event_construct.reply_lambda)
        data_construct.db_secret.grant_read(event_construct.reply_lambda)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "AttachmentsBucket", value=data_construct.attachments_bucket.bucket_name)
        CfnOutput(self, "AutoReplyQueueUrl", value=event_construct.queue.queue_url)
        CfnOutput(self, "DbSecretArn", value=data_construct.db_secret.secret_arn)
