"""AWS session configuration.

Single place where region, profile and endpoint are resolved for the
CloudWatch Logs client.
"""

import os
from dataclasses import dataclass
from typing import Any

import boto3


@dataclass(frozen=True)
class AWSConfig:
    """AWS client settings.

    Attributes:
        region: AWS region; None lets boto3 resolve it from its own chain.
        profile: Shared config profile name; None uses the default chain.
        endpoint_url: Custom endpoint for LocalStack/testing.
    """

    region: str | None = None
    profile: str | None = None
    endpoint_url: str | None = None

    @classmethod
    def from_env(
        cls,
        region: str | None = None,
        profile: str | None = None,
        endpoint_url: str | None = None,
    ) -> "AWSConfig":
        """Fill unset values from the standard AWS environment variables.

        Environment variables (checked in order):
            - AWS_REGION / AWS_DEFAULT_REGION -> region
            - AWS_PROFILE -> profile
            - AWS_ENDPOINT_URL_CLOUDWATCH_LOGS / AWS_ENDPOINT_URL -> endpoint_url
        """
        return cls(
            region=region
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION"),
            profile=profile or os.environ.get("AWS_PROFILE"),
            endpoint_url=endpoint_url
            or os.environ.get("AWS_ENDPOINT_URL_CLOUDWATCH_LOGS")
            or os.environ.get("AWS_ENDPOINT_URL"),
        )

    def session_kwargs(self) -> dict[str, Any]:
        """Build kwargs for boto3.Session."""
        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.profile:
            kwargs["profile_name"] = self.profile
        return kwargs


def create_logs_client(config: AWSConfig) -> Any:
    """Create a boto3 CloudWatch Logs client for the given settings."""
    session = boto3.Session(**config.session_kwargs())
    client_kwargs: dict[str, Any] = {}
    if config.endpoint_url:
        client_kwargs["endpoint_url"] = config.endpoint_url
    return session.client("logs", **client_kwargs)
