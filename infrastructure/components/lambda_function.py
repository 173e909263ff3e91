import json
from typing import Dict, Optional

import pulumi
import pulumi_aws as aws

BASIC_EXECUTION_POLICY_ARN = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
)

LAMBDA_ASSUME_ROLE = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "lambda.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
)


class DockerLambdaFunction(pulumi.ComponentResource):
    """
    One entry point of the backend image deployed as its own Lambda function.

    All functions run the same container image; `handler` overrides the image
    command (e.g. "main.api_handler" or "authorizer.lambda_handler"). Each
    function gets a dedicated role, so `policies` (name -> JSON document) only
    grant what that entry point touches.
    """

    def __init__(
        self,
        name: str,
        handler: str,
        image_uri: pulumi.Input[str],
        environment: Optional[Dict[str, pulumi.Input[str]]] = None,
        policies: Optional[Dict[str, pulumi.Input[str]]] = None,
        timeout: int = 10,
        memory_size: int = 256,
        architecture: str = "x86_64",
        log_retention_days: int = 14,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("jobcopilot:aws:DockerLambdaFunction", name, None, opts)
        child = pulumi.ResourceOptions(parent=self)

        # The function name is fixed so the log group name matches it.
        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=f"/aws/lambda/{name}",
            retention_in_days=log_retention_days,
            opts=child,
        )

        self.role = aws.iam.Role(
            f"{name}-role", assume_role_policy=LAMBDA_ASSUME_ROLE, opts=child
        )
        aws.iam.RolePolicyAttachment(
            f"{name}-basic-execution",
            role=self.role.name,
            policy_arn=BASIC_EXECUTION_POLICY_ARN,
            opts=child,
        )
        self.inline_policies = [
            aws.iam.RolePolicy(
                f"{name}-{policy_name}",
                role=self.role.id,
                policy=document,
                opts=child,
            )
            for policy_name, document in (policies or {}).items()
        ]

        self.function = aws.lambda_.Function(
            name,
            name=name,
            package_type="Image",
            image_uri=image_uri,
            image_config={"commands": [handler]},
            architectures=[architecture],
            role=self.role.arn,
            timeout=timeout,
            memory_size=memory_size,
            environment={"variables": environment or {}},
            opts=pulumi.ResourceOptions(
                parent=self, depends_on=[self.log_group, *self.inline_policies]
            ),
        )

        self.arn = self.function.arn
        self.name = self.function.name
        self.invoke_arn = self.function.invoke_arn

        self.register_outputs(
            {"arn": self.arn, "name": self.name, "invoke_arn": self.invoke_arn}
        )
