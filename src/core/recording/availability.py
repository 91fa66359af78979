"""
Waiting out transient unavailability of a finished recording.

The recorder may still hold the file, or may not have flushed it to its
final path yet, when the upload starts. Each read attempt ends one of
three ways:

- busy (another process holds it): wait and retry, without limit
- missing: wait and retry, up to max_missing_retries extra attempts
- anything else: raise immediately
"""

import asyncio
import errno
import logging
from dataclasses import dataclass
from pathlib import Path

from .protocols import FileSystem

logger = logging.getLogger(__name__)

BUSY_ERRNOS = frozenset({errno.EBUSY, errno.ETXTBSY})


class RecordingNotFoundError(FileNotFoundError):
    """Raised when a recording never appears within the retry budget."""
    pass


@dataclass(frozen=True)
class ReadRetryPolicy:
    """
    How long to wait for a recording to become readable.

    With the defaults a missing file is tried 11 times (1 + 10 retries)
    one second apart.
    """
    interval_seconds: float = 1.0
    max_missing_retries: int = 10

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds cannot be negative")
        if self.max_missing_retries < 0:
            raise ValueError("max_missing_retries cannot be negative")

    @property
    def max_missing_attempts(self) -> int:
        return self.max_missing_retries + 1


async def wait_for_recording(
    path: Path,
    filesystem: FileSystem,
    policy: ReadRetryPolicy = ReadRetryPolicy(),
) -> bytes:
    """
    Read the recording at path, retrying while it is busy or missing.

    Raises:
        RecordingNotFoundError: the file was still missing after the budget
        OSError: any other read failure, unchanged
    """
    retries_left = policy.max_missing_retries

    while True:
        try:
            data = await filesystem.read_bytes(path)
        except OSError as e:
            if e.errno in BUSY_ERRNOS:
                logger.info("Recording is busy, retrying", extra={"path": str(path)})
            elif isinstance(e, FileNotFoundError) or e.errno == errno.ENOENT:
                if retries_left <= 0:
                    raise RecordingNotFoundError(
                        errno.ENOENT,
                        f"Recording not found after {policy.max_missing_attempts} attempts",
                        str(path),
                    ) from e
                logger.info(
                    "Recording not found, retrying",
                    extra={"path": str(path), "retries_left": retries_left}
                )
                retries_left -= 1
            else:
                raise

            await asyncio.sleep(policy.interval_seconds)
            continue

        logger.info(
            "Read recording file",
            extra={"path": str(path), "size_bytes": len(data)}
        )
        return data
