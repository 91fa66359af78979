"""
Shared fixtures for the recording pipeline tests.

The fakes here stand in for the filesystem and directory-event
collaborators, so the pipeline can be exercised without real timing.
"""

import errno
import logging
import os
from pathlib import Path
from typing import Optional

import pytest

from src.config.settings import get_settings
from src.core.recording.availability import ReadRetryPolicy
from src.infrastructure.storage.client import MockStorageClient


class FakeFileSystem:
    """
    In-memory FileSystem.

    Reads can be scripted with a queue of errnos to raise before the
    file becomes readable; every read and delete is counted.
    """

    def __init__(self) -> None:
        self.files: dict[Path, bytes] = {}
        self.read_errors: dict[Path, list[int]] = {}
        self.delete_error: Optional[int] = None
        self.reads: list[Path] = []
        self.deleted: list[Path] = []

    def add(self, path, data: bytes = b"data") -> Path:
        path = Path(path)
        self.files[path] = data
        return path

    def fail_reads(self, path, *codes: int) -> None:
        self.read_errors.setdefault(Path(path), []).extend(codes)

    async def read_bytes(self, path: Path) -> bytes:
        path = Path(path)
        self.reads.append(path)
        pending = self.read_errors.get(path)
        if pending:
            code = pending.pop(0)
            raise _os_error(code, path)
        if path not in self.files:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
        return self.files[path]

    async def delete(self, path: Path) -> None:
        path = Path(path)
        if self.delete_error is not None:
            raise _os_error(self.delete_error, path)
        self.files.pop(path, None)
        self.deleted.append(path)

    def read_count(self, path) -> int:
        return self.reads.count(Path(path))


def _os_error(code: int, path: Path) -> OSError:
    # OSError picks the matching subclass (FileNotFoundError, ...) from errno
    return OSError(code, os.strerror(code), str(path))


@pytest.fixture
def filesystem() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def fast_retry() -> ReadRetryPolicy:
    """Default attempt budget without the one-second pauses."""
    return ReadRetryPolicy(interval_seconds=0)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    caplog.set_level(logging.DEBUG)
