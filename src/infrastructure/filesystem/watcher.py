"""
Directory change notification by polling.

Each scan takes a snapshot of (size, mtime) for every matching entry and
diffs it against the previous one. Polling works the same on every
platform and on network or container mounts where inotify events are
unreliable.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from ...core.recording.keys import SEGMENT_PATTERN
from ...core.recording.models import DirectoryEvent, EventKind

logger = logging.getLogger(__name__)

Snapshot = dict[str, tuple[int, int]]


def _sequence_order(name: str) -> tuple[int, str]:
    # segment_999 before segment_1000; unmatched names sort as sequence 0
    match = SEGMENT_PATTERN.search(name)
    return (int(match.group(1)) if match else 0, name)


class PollingDirectoryWatcher:
    """
    DirectoryEventSource that rescans a directory on an interval.

    Files already present on the first scan are reported as created.
    New files within one scan are ordered by modification time, then by
    segment number. After close() the event stream does one final scan and
    ends, so changes made since the last poll are not lost.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        interval_seconds: float = 0.5,
        suffix: Optional[str] = ".mp4",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._directory = Path(directory)
        self._interval = interval_seconds
        self._suffix = suffix
        self._snapshot: Snapshot = {}
        self._closed = False
        self._wake = asyncio.Event()

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._wake.set()

    def scan(self) -> list[DirectoryEvent]:
        """
        Diff the directory against the previous scan.

        Raises OSError if the directory can't be listed; the previous
        snapshot is kept in that case.
        """
        current = self._take_snapshot()
        previous = self._snapshot
        self._snapshot = current

        created = sorted(
            (name for name in current if name not in previous),
            key=lambda name: (current[name][1], *_sequence_order(name)),
        )
        events = [DirectoryEvent(EventKind.CREATED, name) for name in created]
        events.extend(
            DirectoryEvent(EventKind.MODIFIED, name)
            for name in sorted(current, key=_sequence_order)
            if name in previous and current[name] != previous[name]
        )
        events.extend(
            DirectoryEvent(EventKind.DELETED, name)
            for name in sorted(previous, key=_sequence_order)
            if name not in current
        )
        return events

    async def events(self) -> AsyncIterator[DirectoryEvent]:
        """Yield events until close() is called, ending with one last scan."""
        logger.info(
            "Polling directory for changes",
            extra={"directory": str(self._directory), "interval_seconds": self._interval}
        )
        while True:
            closing = self._closed
            try:
                events = await asyncio.to_thread(self.scan)
            except OSError as e:
                logger.error(
                    "Failed to scan directory",
                    extra={"directory": str(self._directory), "error": str(e)},
                    exc_info=e,
                )
                events = []

            for event in events:
                yield event

            if closing:
                return

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def _take_snapshot(self) -> Snapshot:
        snapshot: Snapshot = {}
        try:
            entries = list(os.scandir(self._directory))
        except FileNotFoundError:
            # The recorder may not have created the directory yet
            return snapshot

        for entry in entries:
            if self._suffix and not entry.name.endswith(self._suffix):
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except FileNotFoundError:
                # Removed between listing and stat
                continue
            snapshot[entry.name] = (stat.st_size, stat.st_mtime_ns)
        return snapshot
