#!/usr/bin/env python3
"""
Upload Cognito settings to AWS Parameter Store.

Reads COGNITO_* variables from a .env file and writes them under the
`/jobcopilot` prefix, where the Lambda authorizer looks them up.
"""

import os
import sys
from pathlib import Path
from typing import Dict

import boto3
import click
from botocore.exceptions import ClientError
from dotenv import dotenv_values

# .env variable -> parameter name below the prefix
COGNITO_PARAMETERS = {
    "COGNITO_USER_POOL_ID": "cognito/user-pool-id",
    "COGNITO_APP_CLIENT_ID": "cognito/app-client-id",
    "COGNITO_REGION": "cognito/region",
    "COGNITO_DOMAIN": "cognito/domain",
}


def load_env_file(env_file_path: str = ".env") -> Dict[str, str]:
    """
    Collect the Cognito parameters defined in a .env file.

    Args:
        env_file_path: Path to .env file

    Returns:
        Mapping of parameter name (without prefix) to value
    """
    if not Path(env_file_path).exists():
        click.secho(f"Error: {env_file_path} file not found", fg="red", err=True)
        sys.exit(1)

    values = dotenv_values(env_file_path)
    parameters = {
        name: values[var]
        for var, name in COGNITO_PARAMETERS.items()
        if values.get(var)
    }

    if not parameters:
        click.secho("Warning: No Cognito parameters found in .env file", fg="yellow")
        click.echo(f"Expected variables: {', '.join(COGNITO_PARAMETERS)}")

    return parameters


def upload_parameters(
    parameters: Dict[str, str], parameter_prefix: str = "/jobcopilot", dry_run: bool = False
) -> int:
    """
    Write parameters to Parameter Store.

    Returns:
        Number of parameters that failed to upload
    """
    if dry_run:
        click.secho("DRY RUN - Would upload the following parameters:", fg="blue")
        for param_name, value in parameters.items():
            click.echo(f"  {parameter_prefix}/{param_name} = {value}")
        return 0

    ssm = boto3.client("ssm")
    failures = 0

    with click.progressbar(parameters.items(), label="Uploading parameters") as items:
        for param_name, value in items:
            full_name = f"{parameter_prefix}/{param_name}"
            try:
                response = ssm.put_parameter(
                    Name=full_name,
                    Value=value,
                    Type="String",
                    Description=f"Job tracker Cognito setting: {param_name}",
                    Overwrite=True,
                )
                click.secho(
                    f"Uploaded {full_name} (version {response['Version']})", fg="green"
                )
            except ClientError as e:
                failures += 1
                click.secho(f"Failed to upload {full_name}: {e}", fg="red", err=True)

    return failures


def verify_parameters(parameters: Dict[str, str], parameter_prefix: str) -> None:
    """Read back each parameter and report whether it exists."""
    click.secho("\nVerifying uploaded parameters...", fg="blue")
    ssm = boto3.client("ssm")

    for param_name in parameters:
        full_name = f"{parameter_prefix}/{param_name}"
        try:
            response = ssm.get_parameter(Name=full_name)
            click.secho(
                f"{full_name} exists (version {response['Parameter']['Version']})",
                fg="green",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ParameterNotFound":
                click.secho(f"{full_name} not found", fg="red")
            else:
                click.secho(f"Error checking {full_name}: {e}", fg="red")


@click.command()
@click.option("--env-file", default=".env", help="Path to .env file", show_default=True)
@click.option(
    "--prefix",
    default=lambda: os.getenv("PARAMETER_PREFIX", "/jobcopilot"),
    help="Parameter Store prefix",
    show_default="/jobcopilot",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@click.option("--verify", is_flag=True, help="Verify parameters after upload")
def main(env_file: str, prefix: str, dry_run: bool, verify: bool):
    """
    Upload Cognito settings from a .env file to AWS Parameter Store.
    """
    prefix = prefix.rstrip("/")
    parameters = load_env_file(env_file)

    if not parameters:
        click.secho("No parameters found to upload", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Found {len(parameters)} Cognito parameters", fg="green")

    failures = upload_parameters(parameters, prefix, dry_run)

    if dry_run:
        click.secho("\nDry run complete.", fg="blue")
        return

    if verify:
        verify_parameters(parameters, prefix)

    if failures:
        sys.exit(1)

    click.secho("\nParameter upload complete!", fg="green")
    click.echo(f"Parameters are now available at prefix: {prefix}")


if __name__ == "__main__":
    main()
