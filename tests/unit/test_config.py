# tests/unit/test_config.py
"""Unit tests for environment-driven configuration."""

import pytest

from bucket_mirror.config import AppConfig, Config, S3Config
from bucket_mirror.exceptions import ConfigError

_CREDENTIAL_VARS = [
    "BUCKET_MIRROR_ACCESS_KEY_ID",
    "BUCKET_MIRROR_SECRET_ACCESS_KEY",
    "BUCKET_MIRROR_REGION",
    "BUCKET_MIRROR_ENDPOINT_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
        for role in ("SOURCE", "DESTINATION"):
            monkeypatch.delenv(name.replace("MIRROR_", f"MIRROR_{role}_"), raising=False)


def test_shared_credentials_apply_to_both_sides(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Tests that unprefixed variables are used when no per-side variable is set.

    Arrange:
        - Set shared credentials and a destination-only endpoint.
    Act:
        - Load the configuration.
    Assert:
        - Both sides share the credentials; only the destination has an endpoint.

    Args:
        monkeypatch (pytest.MonkeyPatch): Pytest fixture for environment changes.
    """
    monkeypatch.setenv("BUCKET_MIRROR_ACCESS_KEY_ID", "shared-key")
    monkeypatch.setenv("BUCKET_MIRROR_SECRET_ACCESS_KEY", "shared-secret")
    monkeypatch.setenv("BUCKET_MIRROR_DESTINATION_ENDPOINT_URL", "http://minio:9000")

    config: Config = Config.from_env("src-bucket", "dst-bucket")

    assert config.source.bucket == "src-bucket"
    assert config.source.access_key_id == "shared-key"
    assert config.source.region == "us-east-1"
    assert config.source.endpoint_url is None
    assert config.destination.bucket == "dst-bucket"
    assert config.destination.secret_access_key == "shared-secret"
    assert config.destination.endpoint_url == "http://minio:9000"


def test_per_side_variable_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Tests that a per-side variable overrides the shared one.

    Args:
        monkeypatch (pytest.MonkeyPatch): Pytest fixture for environment changes.
    """
    monkeypatch.setenv("BUCKET_MIRROR_ACCESS_KEY_ID", "shared-key")
    monkeypatch.setenv("BUCKET_MIRROR_SOURCE_ACCESS_KEY_ID", "source-key")
    monkeypatch.setenv("BUCKET_MIRROR_SECRET_ACCESS_KEY", "shared-secret")
    monkeypatch.setenv("BUCKET_MIRROR_SOURCE_REGION", "eu-west-1")

    source: S3Config = S3Config.from_env("source", "src-bucket")

    assert source.access_key_id == "source-key"
    assert source.region == "eu-west-1"


def test_missing_credentials_raise() -> None:
    """
    Tests that a missing required variable raises `ConfigError` naming the per-side variable.
    """
    with pytest.raises(
        ConfigError,
        match="'BUCKET_MIRROR_SOURCE_ACCESS_KEY_ID' must be set",
    ):
        Config.from_env("src-bucket", "dst-bucket")


def test_missing_bucket_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Tests that an empty bucket name is rejected.

    Args:
        monkeypatch (pytest.MonkeyPatch): Pytest fixture for environment changes.
    """
    monkeypatch.setenv("BUCKET_MIRROR_ACCESS_KEY_ID", "key")
    monkeypatch.setenv("BUCKET_MIRROR_SECRET_ACCESS_KEY", "secret")

    with pytest.raises(ConfigError, match="destination bucket"):
        Config.from_env("src-bucket", "")


def test_as_boto_dict_omits_unset_endpoint() -> None:
    """
    Tests the boto3 client parameters with and without a custom endpoint.
    """
    aws: S3Config = S3Config("b", "key", "secret")
    minio: S3Config = S3Config("b", "key", "secret", endpoint_url="http://localhost:9000")

    assert aws.as_boto_dict() == {
        "aws_access_key_id": "key",
        "aws_secret_access_key": "secret",
        "region_name": "us-east-1",
    }
    assert minio.as_boto_dict()["endpoint_url"] == "http://localhost:9000"


def test_app_config_defaults() -> None:
    """
    Tests the operational defaults.
    """
    app: AppConfig = AppConfig()

    assert app.concurrency >= 1
    assert app.progress_interval_s == 2.0
    assert app.access_policy == "public-read"
    assert app.max_rounds is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"concurrency": 0},
        {"progress_interval_s": 0},
        {"max_rounds": 0},
        {"client_max_attempts": 0},
    ],
)
def test_app_config_rejects_invalid_values(kwargs: dict) -> None:
    """
    Tests that out-of-range settings raise `ConfigError`.

    Args:
        kwargs (dict): The invalid setting.
    """
    with pytest.raises(ConfigError):
        AppConfig(**kwargs)
