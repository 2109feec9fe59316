"""
Event pipeline: SQS delay queue -> Lambda that delivers automated chat replies.

The API Lambda enqueues one message per customer chat message with
DelaySeconds set to the reply delay; the consumer appends the reply.
"""

from typing import Dict

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_lambda_event_sources as event_sources,
    aws_logs as logs,
    aws_sqs as sqs,
)
from constructs import Construct


class EventPipelineConstruct(Construct):
    """Wire the auto-reply queue to its consumer Lambda."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        code: _lambda.Code,
        vpc: ec2.IVpc,
        shared_env: Dict[str, str],
        reply_delay_seconds: int = 1,
    ) -> None:
        super().__init__(scope, construct_id)

        self.dead_letter_queue = sqs.Queue(
            self,
            "AutoReplyDlq",
            retention_period=Duration.days(14),
        )

        self.queue = sqs.Queue(
            self,
            "AutoReplyQueue",
            queue_name=f"support-portal-auto-reply-{environment}",
            delivery_delay=Duration.seconds(reply_delay_seconds),
            visibility_timeout=Duration.seconds(60),
            dead_letter_queue=sqs.DeadLetterQueue(
                max_receive_count=3, queue=self.dead_letter_queue
            ),
        )

        self.reply_lambda = _lambda.Function(
            self,
            "AutoReplyHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.auto_reply.lambda_handler",
            code=code,
            timeout=Duration.seconds(30),
            memory_size=256,
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            environment={
                **shared_env,
                # The consumer delivers replies itself; it never re-enqueues.
                "SCHEDULER_BACKEND": "manual",
            },
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        self.reply_lambda.add_event_source(
            event_sources.SqsEventSource(
                self.queue,
                batch_size=10,
                report_batch_item_failures=True,
            )
        )
