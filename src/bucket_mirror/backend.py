# src/bucket_mirror/backend.py
"""
Storage backend contract and its S3 implementation.

The sync engine only talks to `StorageBackend`. `S3Backend` adapts a boto3
S3 client to that contract and translates botocore errors into the two
failure classes the engine understands: `BackendError` (retry later) and
`InvalidObjectError` (never retry).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, BinaryIO, Dict, FrozenSet, List, Mapping, Optional, Union

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from bucket_mirror.config import S3Config
from bucket_mirror.exceptions import BackendError, InvalidObjectError
from bucket_mirror.models import ObjectRecord

if TYPE_CHECKING:
    from types_boto3_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)

# Error codes S3 returns when the key or request arguments themselves are bad.
INVALID_ARGUMENT_CODES: FrozenSet[str] = frozenset(
    {"InvalidArgument", "KeyTooLongError", "InvalidObjectName"}
)

# GetObject response fields replayed on PutObject.
_CONTENT_HEADERS: List[str] = [
    "CacheControl",
    "ContentDisposition",
    "ContentEncoding",
    "ContentLanguage",
    "Expires",
]


@dataclass(frozen=True)
class ListPage:
    """
    One page of a container listing.

    Attributes:
        records (List[ObjectRecord]): The records on this page.
        next_token (str, optional): Continuation token for the next page, or
            None when the listing is complete.
    """

    records: List[ObjectRecord]
    next_token: Optional[str] = None


@dataclass(frozen=True)
class ObjectPayload:
    """
    The content of one object as read from a container.

    Attributes:
        body (Union[bytes, BinaryIO]): The object's bytes, or a readable stream.
        metadata (Mapping[str, Any]): Backend metadata to replay on write.
    """

    body: Union[bytes, BinaryIO]
    metadata: Mapping[str, Any] = field(default_factory=dict)


class StorageBackend(ABC):
    """The object-storage capability consumed by the sync engine."""

    @abstractmethod
    def list_page(
        self, container: str, continuation_token: Optional[str] = None
    ) -> ListPage:
        """
        Lists one page of objects.

        Args:
            container (str): The container to list.
            continuation_token (str, optional): Token from the previous page.

        Returns:
            ListPage: The page's records and the token for the next page.

        Raises:
            BackendError: If the page cannot be retrieved.
        """

    @abstractmethod
    def read_object(self, container: str, key: str) -> ObjectPayload:
        """
        Reads an object's bytes and metadata.

        Raises:
            BackendError: On any backend or network fault.
        """

    @abstractmethod
    def write_object(
        self,
        container: str,
        key: str,
        body: Union[bytes, BinaryIO],
        metadata: Mapping[str, Any],
        access_policy: str,
    ) -> int:
        """
        Writes an object and returns the number of bytes written.

        Raises:
            InvalidObjectError: If the key or arguments are invalid.
            BackendError: On any other backend or network fault.
        """


class S3Backend(StorageBackend):
    """`StorageBackend` over a (thread-safe) boto3 S3 client."""

    def __init__(self, client: "S3Client") -> None:
        """
        Initialize the backend.

        Args:
            client (S3Client): A boto3 S3 client. boto3 clients may be shared
                between threads.
        """
        self._client: "S3Client" = client

    @classmethod
    def from_config(
        cls,
        config: S3Config,
        max_pool_connections: int = 10,
        max_attempts: int = 3,
    ) -> "S3Backend":
        """
        Creates a backend with its own boto3 client.

        Args:
            config (S3Config): Endpoint and credentials.
            max_pool_connections (int): HTTP connection pool size; should be at
                least the worker count.
            max_attempts (int): botocore's per-request attempt budget.

        Returns:
            S3Backend: The configured backend.
        """
        boto_config: BotoConfig = BotoConfig(
            signature_version="s3v4",
            max_pool_connections=max_pool_connections,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        )
        client: "S3Client" = boto3.client("s3", **config.as_boto_dict(), config=boto_config)
        logger.debug(
            f"Created S3 client for bucket '{config.bucket}' "
            f"(endpoint: {config.endpoint_url or 'AWS default'})"
        )
        return cls(client)

    def list_page(
        self, container: str, continuation_token: Optional[str] = None
    ) -> ListPage:
        params: Dict[str, Any] = {"Bucket": container}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            response: Dict[str, Any] = self._client.list_objects_v2(**params)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(f"Failed to list 's3://{container}': {e}") from e

        records: List[ObjectRecord] = [
            ObjectRecord(
                container=container,
                key=obj["Key"],
                size=obj["Size"],
                metadata={
                    "etag": obj.get("ETag", "").strip('"'),
                    "storage_class": obj.get("StorageClass", "STANDARD"),
                    "last_modified": obj.get("LastModified"),
                },
            )
            for obj in response.get("Contents", [])
        ]
        next_token: Optional[str] = None
        if response.get("IsTruncated"):
            next_token = response.get("NextContinuationToken")
            if not next_token:
                raise BackendError(
                    f"Listing 's3://{container}' is truncated but has no continuation token."
                )
        return ListPage(records=records, next_token=next_token)

    def read_object(self, container: str, key: str) -> ObjectPayload:
        try:
            response: Dict[str, Any] = self._client.get_object(Bucket=container, Key=key)
            # Some S3 providers require Content-Length on PUT and reject chunked
            # uploads, so the whole object is read into memory.
            body: bytes = response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise BackendError(f"Failed to read 's3://{container}/{key}': {e}") from e

        metadata: Dict[str, Any] = {
            "ContentType": response.get("ContentType", "binary/octet-stream"),
            "Metadata": response.get("Metadata", {}),
        }
        for header in _CONTENT_HEADERS:
            if response.get(header) is not None:
                metadata[header] = response[header]
        return ObjectPayload(body=body, metadata=metadata)

    def write_object(
        self,
        container: str,
        key: str,
        body: Union[bytes, BinaryIO],
        metadata: Mapping[str, Any],
        access_policy: str,
    ) -> int:
        data: bytes = body if isinstance(body, bytes) else body.read()
        try:
            self._client.put_object(
                Bucket=container,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ACL=access_policy,
                **metadata,
            )
        except ParamValidationError as e:
            raise InvalidObjectError(f"Invalid write for key '{key}': {e}") from e
        except ClientError as e:
            code: str = e.response.get("Error", {}).get("Code", "")
            if code in INVALID_ARGUMENT_CODES:
                raise InvalidObjectError(
                    f"Destination rejected key '{key}': {code}"
                ) from e
            raise BackendError(f"Failed to write 's3://{container}/{key}': {e}") from e
        except BotoCoreError as e:
            raise BackendError(f"Failed to write 's3://{container}/{key}': {e}") from e
        return len(data)
