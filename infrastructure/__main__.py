"""Pulumi program: tables, Lambda functions and the HTTP API of the job tracker."""

import json
import os
import subprocess
import sys

import pulumi
import pulumi_aws as aws
from components.lambda_function import DockerLambdaFunction

stack_config = pulumi.Config()
allow_dev_header = stack_config.get_bool("allowDevHeader") or False

current = aws.get_caller_identity()
current_region = aws.get_region()

ecr_repository = aws.ecr.Repository(
    "jobcopilot-repo", name="jobcopilot-backend", force_delete=True
)


def get_image_tag() -> str:
    """Tag from image_tag.txt when the build wrote one, else the content hash."""
    if os.path.exists("image_tag.txt"):
        with open("image_tag.txt", "r") as f:
            return f.read().strip()
    result = subprocess.run(
        [sys.executable, "get_image_tag.py"],
        capture_output=True,
        text=True,
        cwd=os.path.dirname(os.path.abspath(__file__)),
        check=True,
    )
    return result.stdout.strip()


image_tag = get_image_tag()
image_uri = ecr_repository.repository_url.apply(lambda url: f"{url}:{image_tag}")

# Cards and the per-user stage config share one partition per user.
cards_table = aws.dynamodb.Table(
    "jobcopilot-cards",
    billing_mode="PAY_PER_REQUEST",
    attributes=[
        {"name": "userId", "type": "S"},
        {"name": "cardId", "type": "S"},
    ],
    hash_key="userId",
    range_key="cardId",
    point_in_time_recovery={"enabled": True},
)

profiles_table = aws.dynamodb.Table(
    "jobcopilot-profiles",
    billing_mode="PAY_PER_REQUEST",
    attributes=[{"name": "userId", "type": "S"}],
    hash_key="userId",
)

dynamodb_policy = pulumi.Output.all(cards_table.arn, profiles_table.arn).apply(
    lambda arns: json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": [
                        "dynamodb:GetItem",
                        "dynamodb:PutItem",
                        "dynamodb:UpdateItem",
                        "dynamodb:DeleteItem",
                        "dynamodb:Query",
                        "dynamodb:Scan",
                    ],
                    "Resource": arns,
                }
            ],
        }
    )
)

parameters_policy = pulumi.Output.concat(
    "arn:aws:ssm:",
    current_region.name,
    ":",
    current.account_id,
    ":parameter/jobcopilot/*",
).apply(
    lambda arn: json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {"Effect": "Allow", "Action": ["ssm:GetParameter"], "Resource": arn}
            ],
        }
    )
)

api_env_vars = {
    "CARDS_TABLE": cards_table.name,
    "PROFILES_TABLE": profiles_table.name,
    "ALLOW_DEV_HEADER": "true" if allow_dev_header else "false",
}

api_function = DockerLambdaFunction(
    "jobcopilot-api",
    handler="main.api_handler",
    image_uri=image_uri,
    environment=api_env_vars,
    policies={"dynamodb": dynamodb_policy},
    timeout=15,
)

health_function = DockerLambdaFunction(
    "jobcopilot-healthz",
    handler="main.healthz",
    image_uri=image_uri,
    memory_size=128,
)

authorizer_function = DockerLambdaFunction(
    "jobcopilot-authorizer",
    handler="authorizer.lambda_handler",
    image_uri=image_uri,
    policies={"parameters": parameters_policy},
)

api = aws.apigatewayv2.Api(
    "jobcopilot-api",
    protocol_type="HTTP",
    cors_configuration={
        "allow_origins": ["*"],
        "allow_headers": ["authorization", "content-type", "x-user-id"],
        "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    },
)

authorizer = aws.apigatewayv2.Authorizer(
    "cognito-authorizer",
    api_id=api.id,
    authorizer_type="REQUEST",
    authorizer_uri=authorizer_function.invoke_arn,
    authorizer_payload_format_version="2.0",
    identity_sources=["$request.header.Authorization"],
    name="cognito-authorizer",
    authorizer_result_ttl_in_seconds=300,
    enable_simple_responses=True,
)

aws.lambda_.Permission(
    "authorizer-permission",
    action="lambda:InvokeFunction",
    function=authorizer_function.name,
    principal="apigateway.amazonaws.com",
    source_arn=pulumi.Output.concat(api.execution_arn, "/authorizers/", authorizer.id),
)

stage = aws.apigatewayv2.Stage(
    "jobcopilot-stage",
    api_id=api.id,
    name="$default",
    auto_deploy=True,
)

integrations = {}
for name, function in {"api": api_function, "health": health_function}.items():
    aws.lambda_.Permission(
        f"{name}-permission",
        action="lambda:InvokeFunction",
        function=function.name,
        principal="apigateway.amazonaws.com",
        source_arn=pulumi.Output.concat(api.execution_arn, "/*/*"),
    )
    integrations[name] = aws.apigatewayv2.Integration(
        f"{name}-integration",
        api_id=api.id,
        integration_type="AWS_PROXY",
        integration_uri=function.invoke_arn,
        integration_method="POST",
        payload_format_version="2.0",
    )

# With the dev header enabled, routes skip the authorizer and the API
# resolves x-user-id itself.
protected_routes = [
    "GET /cards",
    "POST /cards",
    "PUT /cards/{cardId}",
    "DELETE /cards/{cardId}",
    "GET /settings/stages",
    "PUT /settings/stages",
    "GET /profile",
    "PUT /profile",
    "GET /stats",
    "GET /reminders",
]

for route_key in protected_routes:
    resource_name = (
        route_key.lower().replace(" ", "").replace("/", "-")
        .replace("{", "").replace("}", "")
    )
    route_args = {
        "api_id": api.id,
        "route_key": route_key,
        "target": pulumi.Output.concat("integrations/", integrations["api"].id),
    }
    if not allow_dev_header:
        route_args["authorization_type"] = "CUSTOM"
        route_args["authorizer_id"] = authorizer.id
    aws.apigatewayv2.Route(f"{resource_name}-route", **route_args)

aws.apigatewayv2.Route(
    "get-health-route",
    api_id=api.id,
    route_key="GET /health",
    target=pulumi.Output.concat("integrations/", integrations["health"].id),
)

pulumi.export("ecr_repository_url", ecr_repository.repository_url)
pulumi.export("image_uri", image_uri)
pulumi.export("api_url", api.api_endpoint)
pulumi.export("cards_table_name", cards_table.name)
pulumi.export("profiles_table_name", profiles_table.name)
