"""
Collaborator interfaces for the recording pipeline.

The pipeline doesn't know whether it's talking to S3, a local disk, or
test fakes. It only needs something that matches these shapes.
"""

from pathlib import Path
from typing import AsyncIterator, Optional, Protocol

from .models import DirectoryEvent


class ObjectStore(Protocol):
    """Durable remote storage. The bucket is fixed by the store's own config."""

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Upload bytes; raise on any failure."""
        ...


class FileSystem(Protocol):
    """
    Local file access.

    Implementations raise OSError subclasses with errno set, so callers
    can tell a busy file from a missing one.
    """

    async def read_bytes(self, path: Path) -> bytes:
        ...

    async def delete(self, path: Path) -> None:
        ...


class DirectoryEventSource(Protocol):
    """Directory change notifications for one directory."""

    def events(self) -> AsyncIterator[DirectoryEvent]:
        """
        Yield events in arrival order.

        After close() the iterator must finish: it may yield changes it
        has not reported yet, then it ends.
        """
        ...

    def close(self) -> None:
        """Ask the event stream to flush and end."""
        ...
