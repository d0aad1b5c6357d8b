# src/bucket_mirror/config.py
"""
Configuration for the bucket-mirror sync engine.

This module centralizes all configuration, loading credentials from
environment variables and providing typed dataclasses for use throughout
the application.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from bucket_mirror.exceptions import ConfigError

ENV_PREFIX: str = "BUCKET_MIRROR"


def _get_env_var(name: str, default: Optional[str] = None) -> str:
    """
    Retrieves a required environment variable.

    Args:
        name (str): The name of the environment variable.
        default (str, optional): The default value if the variable is not set.

    Returns:
        str: The value of the environment variable.
    """
    value: Optional[str] = os.environ.get(name, default)
    if not value:
        raise ConfigError(f"Environment variable '{name}' must be set.")
    return value


def _get_role_env_var(
    role: str, name: str, default: Optional[str] = None, required: bool = True
) -> Optional[str]:
    """
    Looks up `BUCKET_MIRROR_<ROLE>_<NAME>`, falling back to `BUCKET_MIRROR_<NAME>`.

    Args:
        role (str): Either "SOURCE" or "DESTINATION".
        name (str): The setting name, e.g. "ACCESS_KEY_ID".
        default (str, optional): Used when neither variable is set.
        required (bool): Raise `ConfigError` when nothing is found.

    Returns:
        Optional[str]: The resolved value, or None for an unset optional setting.
    """
    role_name: str = f"{ENV_PREFIX}_{role}_{name}"
    shared: Optional[str] = os.environ.get(f"{ENV_PREFIX}_{name}") or default
    if required:
        return _get_env_var(role_name, shared)
    return os.environ.get(role_name) or shared


def _default_concurrency() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class S3Config:
    """
    Represents the configuration for an S3-compatible endpoint.

    Attributes:
        bucket (str): The bucket name.
        access_key_id (str): The access key ID.
        secret_access_key (str): The secret access key.
        region (str): The AWS region.
        endpoint_url (str, optional): A custom endpoint for non-AWS providers.
    """

    bucket: str
    access_key_id: str
    secret_access_key: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as a dictionary suitable for boto3 clients.

        Returns:
            Dict[str, str]: A dictionary of client parameters.
        """
        params: Dict[str, str] = {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "region_name": self.region,
        }
        if self.endpoint_url:
            params["endpoint_url"] = self.endpoint_url
        return params

    @classmethod
    def from_env(cls, role: str, bucket: str) -> "S3Config":
        """
        Builds the endpoint configuration for one side of the sync.

        Args:
            role (str): Either "SOURCE" or "DESTINATION".
            bucket (str): The bucket name for this side.

        Returns:
            S3Config: The resolved configuration.
        """
        role = role.upper()
        if not bucket:
            raise ConfigError(f"A {role.lower()} bucket must be given.")
        return cls(
            bucket=bucket,
            access_key_id=_get_role_env_var(role, "ACCESS_KEY_ID"),
            secret_access_key=_get_role_env_var(role, "SECRET_ACCESS_KEY"),
            region=_get_role_env_var(role, "REGION", "us-east-1"),
            endpoint_url=_get_role_env_var(role, "ENDPOINT_URL", required=False),
        )


@dataclass(frozen=True)
class AppConfig:
    """
    Defines the sync engine's operational parameters.

    Attributes:
        concurrency (int): Number of objects copied simultaneously. Defaults
            to the number of available CPUs.
        progress_interval_s (float): Seconds between progress lines.
        access_policy (str): Canned ACL applied to every written object.
        max_rounds (int, optional): Hard cap on copy rounds. None means the
            no-progress rule alone ends the retry loop.
        client_max_attempts (int): Attempts botocore makes per request before
            an error surfaces to the worker.
    """

    concurrency: int = field(default_factory=_default_concurrency)
    progress_interval_s: float = 2.0
    access_policy: str = "public-read"
    max_rounds: Optional[int] = None
    client_max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {self.concurrency}.")
        if self.progress_interval_s <= 0:
            raise ConfigError(
                f"progress_interval_s must be positive, got {self.progress_interval_s}."
            )
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ConfigError(f"max_rounds must be at least 1, got {self.max_rounds}.")
        if self.client_max_attempts < 1:
            raise ConfigError(
                f"client_max_attempts must be at least 1, got {self.client_max_attempts}."
            )


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for the entire application.

    Attributes:
        source (S3Config): Configuration for the source bucket.
        destination (S3Config): Configuration for the destination bucket.
        app (AppConfig): General application settings.
    """

    source: S3Config
    destination: S3Config
    app: AppConfig = field(default_factory=AppConfig)

    @classmethod
    def from_env(
        cls,
        source_bucket: str,
        destination_bucket: str,
        app: Optional[AppConfig] = None,
    ) -> "Config":
        """
        Loads credentials for both buckets from environment variables.

        Args:
            source_bucket (str): The bucket to copy from.
            destination_bucket (str): The bucket to copy to.
            app (AppConfig, optional): Operational settings; defaults apply if omitted.

        Returns:
            Config: The assembled configuration.
        """
        return cls(
            source=S3Config.from_env("SOURCE", source_bucket),
            destination=S3Config.from_env("DESTINATION", destination_bucket),
            app=app or AppConfig(),
        )
