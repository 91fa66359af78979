"""
Object storage integration for recordings and segments.

Supports S3 and S3-compatible stores via boto3.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    StorageError,
    StoredObject,
    create_storage_client,
)

__all__ = [
    "MockStorageClient",
    "S3StorageClient",
    "StorageConfig",
    "StorageError",
    "StoredObject",
    "create_storage_client",
]
