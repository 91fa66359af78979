"""
Object storage client for recordings and recording segments.

Supports AWS S3 and S3-compatible stores (MinIO, R2) via boto3, with a
mock mode for local development.

Mock mode stores objects in memory, enabling pipeline testing without
provisioning an actual bucket.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Credentials are optional. On AWS the default credential chain
    (instance role, task role) applies; local development passes an
    explicit key pair.
    """
    bucket_name: str
    region: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.region:
            raise ValueError("Region is required")
        if not self.bucket_name:
            raise ValueError("Bucket name is required")
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValueError(
                "access_key_id and secret_access_key must be provided together"
            )

    @property
    def has_explicit_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


class S3StorageClient:
    """
    S3 object storage client.

    boto3 is synchronous, so each call runs in a worker thread via
    asyncio.to_thread. The event loop keeps processing directory events
    while a segment is in flight.
    """

    def __init__(self, config: StorageConfig, s3_client=None) -> None:
        """
        Initialize the S3 client with boto3.

        Args:
            config: Bucket, region and optional credentials
            s3_client: Pre-built boto3 client (tests pass a stubbed one)
        """
        self._config = config

        if s3_client is None:
            import boto3

            client_kwargs = {"region_name": config.region}
            if config.endpoint_url:
                client_kwargs["endpoint_url"] = config.endpoint_url
            if config.has_explicit_credentials:
                client_kwargs["aws_access_key_id"] = config.access_key_id
                client_kwargs["aws_secret_access_key"] = config.secret_access_key

            s3_client = boto3.client("s3", **client_kwargs)

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "explicit_credentials": config.has_explicit_credentials,
            }
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """
        Upload bytes under key. Returns once S3 has acknowledged the write.

        Raises StorageError on any failure, so callers never mistake an
        unknown outcome for a success.
        """
        params = {
            "Bucket": self._config.bucket_name,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if metadata:
            params["Metadata"] = metadata

        try:
            await asyncio.to_thread(self._s3_client.put_object, **params)
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={
                    "bucket": self._config.bucket_name,
                    "key": key,
                    "error": str(e),
                }
            )
            raise StorageError(f"Upload failed: {e}") from e

        logger.debug(
            "Uploaded object",
            extra={"key": key, "size_bytes": len(data)}
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    """An object held by MockStorageClient."""
    key: str
    data: bytes
    content_type: str
    metadata: dict[str, str] = field(default_factory=dict)


class MockStorageClient:
    """
    In-memory storage for local development and tests.

    Every put is recorded in call order, including failed ones, so tests
    can count upload attempts. Set fail_keys (or fail_all) to simulate a
    store that rejects writes.
    """

    def __init__(self, bucket_name: str = "mock-bucket") -> None:
        self.bucket_name = bucket_name
        self.objects: dict[str, StoredObject] = {}
        self.attempts: list[str] = []
        self.fail_keys: set[str] = set()
        self.fail_all = False
        logger.info("Initialized mock storage client (in-memory)")

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Store object in memory."""
        self.attempts.append(key)
        # yield like a real network call would
        await asyncio.sleep(0)

        if self.fail_all or key in self.fail_keys:
            raise StorageError(f"Upload failed: mock rejection for {key}")

        self.objects[key] = StoredObject(
            key=key,
            data=data,
            content_type=content_type,
            metadata=dict(metadata or {}),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
):
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
