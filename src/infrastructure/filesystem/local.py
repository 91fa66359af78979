"""
Local filesystem access.

Blocking file calls run in a worker thread via asyncio.to_thread so large
recordings don't stall the event loop. OSErrors propagate unchanged; the
availability wait classifies them by errno.
"""

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    async def read_bytes(self, path: Path) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def delete(self, path: Path) -> None:
        await asyncio.to_thread(os.unlink, path)
        logger.debug("Deleted local file", extra={"path": str(path)})
