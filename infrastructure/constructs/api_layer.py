"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps the portal services and the DB pool warm across routes.
Uses Docker bundling for dependencies (runs in CI/CD pipeline).
"""

from typing import Dict

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct

# Kept in step with handlers.main.ROUTE_TABLE.
ROUTE_DEFS = (
    (apigw.HttpMethod.GET, "/health"),
    (apigw.HttpMethod.GET, "/help-center"),
    (apigw.HttpMethod.GET, "/kb"),
    (apigw.HttpMethod.POST, "/kb"),
    (apigw.HttpMethod.PATCH, "/kb/{id}"),
    (apigw.HttpMethod.DELETE, "/kb/{id}"),
    (apigw.HttpMethod.POST, "/kb/{id}/active"),
    (apigw.HttpMethod.GET, "/conversations"),
    (apigw.HttpMethod.POST, "/conversations"),
    (apigw.HttpMethod.GET, "/conversations/{id}/messages"),
    (apigw.HttpMethod.POST, "/conversations/{id}/messages"),
    (apigw.HttpMethod.GET, "/tickets"),
    (apigw.HttpMethod.POST, "/tickets"),
    (apigw.HttpMethod.GET, "/tickets/{id}"),
    (apigw.HttpMethod.POST, "/tickets/{id}/respond"),
    (apigw.HttpMethod.POST, "/tickets/{id}/close"),
    (apigw.HttpMethod.GET, "/dashboard/stats"),
    (apigw.HttpMethod.POST, "/attachments"),
)


def bundled_source() -> _lambda.Code:
    """Lambda code from src/ with requirements-lambda.txt installed alongside."""
    return _lambda.Code.from_asset(
        "src",
        bundling=BundlingOptions(
            image=_lambda.Runtime.PYTHON_3_12.bundling_image,
            command=[
                "bash", "-c",
                "pip install -r requirements-lambda.txt -t /asset-output && "
                "cp -r . /asset-output"
            ],
        ),
    )


class ApiLayerConstruct(Construct):
    """Expose the support portal endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        code: _lambda.Code,
        vpc: ec2.IVpc,
        shared_env: Dict[str, str],
        lambda_memory_mb: int = 512,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            environment={**shared_env, "SCHEDULER_BACKEND": "sqs"},
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # HTTP API with minimal latency and low cost.
        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"support-portal-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.ANY],
                allow_headers=["Authorization", "Content-Type"],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        for method, path in ROUTE_DEFS:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
