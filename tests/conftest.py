# tests/conftest.py
"""
Pytest configuration and fixtures for the bucket-mirror tests.

This module sets up:
- In-memory backends and a buffered console for the unit tests.
- Docker-based MinIO services (via pytest-docker) for the e2e tests, which
  only start when an e2e test requests them.
"""

import io
import uuid
from pathlib import Path
from typing import Any, Dict, Generator

import boto3
import pytest
import requests
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from requests.exceptions import ConnectionError
from rich.console import Console

from bucket_mirror.config import AppConfig
from fakes import FakeBackend

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"


@pytest.fixture
def backend() -> FakeBackend:
    """An empty in-memory backend with two records per listing page."""
    return FakeBackend(page_size=2)


@pytest.fixture
def seeded_backend(backend: FakeBackend) -> FakeBackend:
    """A backend whose 'source' container holds five objects."""
    for i in range(5):
        backend.put("source", f"data/obj_{i}.txt", f"content of {i}".encode() * (i + 1))
    return backend


@pytest.fixture
def console() -> Console:
    """A console that records into a buffer, wide enough to avoid wrapping."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def app_config() -> AppConfig:
    """Application settings with a small pool and a fast progress ticker."""
    return AppConfig(concurrency=4, progress_interval_s=0.01)


# --- Docker Fixtures ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the e2e suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration object.

    Returns:
        str: The absolute path to the docker-compose.yml file.
    """
    return str(Path(pytestconfig.rootpath) / "tests" / "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_compose_project_name() -> str:
    """
    Define a unique, static project name for the Docker stack.

    Returns:
        str: A unique name for the docker-compose project.
    """
    return "bucket-mirror-tests"


def _is_s3_responsive(url: str) -> bool:
    """
    Check if the MinIO health endpoint is responsive.

    Args:
        url (str): The base URL of the MinIO API.

    Returns:
        bool: True if the service is responsive, False otherwise.
    """
    try:
        response: requests.Response = requests.get(f"{url}/minio/health/live")
        return response.status_code == 200
    except ConnectionError:
        return False


def _s3_service(docker_ip: str, docker_services: Any, service: str) -> Dict[str, Any]:
    port: int = docker_services.port_for(service, 9000)
    api_url: str = f"http://{docker_ip}:{port}"
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.1, check=lambda: _is_s3_responsive(api_url)
    )
    return {
        "endpoint_url": api_url,
        "aws_access_key_id": S3_ACCESS_KEY,
        "aws_secret_access_key": S3_SECRET_KEY,
        "region_name": S3_REGION,
    }


@pytest.fixture(scope="session")
def source_s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the source S3 service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host, provided by pytest-docker.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Connection details for the source S3 service.
    """
    return _s3_service(docker_ip, docker_services, "minio-source")


@pytest.fixture(scope="session")
def dest_s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the destination S3 service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host, provided by pytest-docker.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Connection details for the destination S3 service.
    """
    return _s3_service(docker_ip, docker_services, "minio-destination")


@pytest.fixture(scope="function")
def s3_buckets(
    source_s3_service: Dict[str, Any],
    dest_s3_service: Dict[str, Any],
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[Dict[str, str], None, None]:
    """
    Create unique, isolated S3 buckets for a single test function.

    Sets the environment variables read by `Config.from_env` and removes
    the buckets and their contents after the test.

    Args:
        source_s3_service (Dict[str, Any]): Connection details for the source S3.
        dest_s3_service (Dict[str, Any]): Connection details for the destination S3.
        monkeypatch (pytest.MonkeyPatch): Used to scope the environment changes.

    Yields:
        Dict[str, str]: The names of the created source and destination buckets.
    """
    suffix: str = f"test-bucket-{uuid.uuid4()}"
    source_bucket: str = f"source-{suffix}"
    dest_bucket: str = f"dest-{suffix}"

    for role, service in (("SOURCE", source_s3_service), ("DESTINATION", dest_s3_service)):
        monkeypatch.setenv(f"BUCKET_MIRROR_{role}_ENDPOINT_URL", service["endpoint_url"])
        monkeypatch.setenv(f"BUCKET_MIRROR_{role}_ACCESS_KEY_ID", S3_ACCESS_KEY)
        monkeypatch.setenv(f"BUCKET_MIRROR_{role}_SECRET_ACCESS_KEY", S3_SECRET_KEY)
        monkeypatch.setenv(f"BUCKET_MIRROR_{role}_REGION", S3_REGION)

    boto_config: BotoConfig = BotoConfig(retries={"max_attempts": 0, "mode": "standard"})
    source_resource = boto3.resource("s3", **source_s3_service, config=boto_config)
    dest_resource = boto3.resource("s3", **dest_s3_service, config=boto_config)
    source_resource.create_bucket(Bucket=source_bucket)
    dest_resource.create_bucket(Bucket=dest_bucket)

    yield {"source": source_bucket, "destination": dest_bucket}

    for resource, bucket in [(source_resource, source_bucket), (dest_resource, dest_bucket)]:
        try:
            bucket_obj = resource.Bucket(bucket)
            bucket_obj.objects.all().delete()
            bucket_obj.delete()
        except ClientError as e:
            if e.response["Error"]["Code"] != "NoSuchBucket":
                raise
