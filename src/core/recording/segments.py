"""
Segment watching and upload.

The recorder appends to one segment file at a time and rotates to a new
one (segment_000.mp4, segment_001.mp4, ...). There is no "done" signal, so
a segment is treated as closed as soon as a newer segment file appears.

Events flow through one asyncio.Queue consumed by a single processing
task, so only one event is handled at a time. Uploads are started as
background tasks: segment N may still be uploading when N+1 is detected,
and completion order is not guaranteed.

Delivery is at most once per watcher. A filename is uploaded only if it is
neither in the ledger (confirmed uploads) nor in flight. Failed segments
are recorded in failed_segments and never retried automatically.
"""

import asyncio
import inspect
import logging
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from .keys import (
    SEGMENT_CONTENT_TYPE,
    build_segment_key,
    is_segment_filename,
    parse_segment_number,
)
from .models import DirectoryEvent, EventKind, SegmentUpload
from .protocols import DirectoryEventSource, FileSystem, ObjectStore

logger = logging.getLogger(__name__)

SegmentCallback = Callable[[str, int], Optional[Awaitable[None]]]
StopWatching = Callable[[], Awaitable[None]]

# Queue sentinel that ends the processing loop
_STOP = object()


class SegmentWatcher:
    """
    Watches one directory and uploads each closed segment once.

    State is a single cursor: the newest segment, presumed still being
    written. When a newer segment shows up, the cursor's file is uploaded
    in the background and the new file becomes the cursor. stop() flushes
    whatever the cursor points at.
    """

    def __init__(
        self,
        storage: ObjectStore,
        filesystem: FileSystem,
        directory: Union[str, Path],
        logical_id: str,
        on_segment_uploaded: Optional[SegmentCallback] = None,
        event_source: Optional[DirectoryEventSource] = None,
    ) -> None:
        """
        Args:
            storage: Where segments are uploaded
            filesystem: Reads segment bytes
            directory: Directory the recorder writes segments into
            logical_id: Bot/session id, namespaces the segment keys
            on_segment_uploaded: Called with (key, sequence_number) after
                each confirmed upload. May be sync or async.
            event_source: Feeds directory events. Without one, events
                are pushed with submit().
        """
        self._storage = storage
        self._filesystem = filesystem
        self._directory = Path(directory)
        self._logical_id = logical_id
        self._on_segment_uploaded = on_segment_uploaded
        self._event_source = event_source

        self._events: asyncio.Queue = asyncio.Queue()
        self._cursor: Optional[str] = None
        self._uploaded: set[str] = set()
        self._superseded: set[str] = set()
        self._in_flight: dict[str, asyncio.Task] = {}
        self._failed: dict[str, str] = {}
        self._completed: list[SegmentUpload] = []

        self._accepting = False
        self._processor: Optional[asyncio.Task] = None
        self._feeder: Optional[asyncio.Task] = None
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    @property
    def uploaded_segments(self) -> frozenset[str]:
        return frozenset(self._uploaded)

    @property
    def failed_segments(self) -> dict[str, str]:
        """Filenames whose upload failed, with the error message."""
        return dict(self._failed)

    @property
    def completed_uploads(self) -> list[SegmentUpload]:
        """Confirmed uploads in completion order."""
        return list(self._completed)

    @property
    def is_running(self) -> bool:
        return self._accepting

    def start(self) -> StopWatching:
        """
        Start processing events. Must be called from a running event loop.

        Returns the stop function.
        """
        if self._processor is not None:
            raise RuntimeError("Segment watcher already started")

        self._accepting = True
        self._processor = asyncio.create_task(self._process_events())
        if self._event_source is not None:
            self._feeder = asyncio.create_task(self._feed(self._event_source))
            self._feeder.add_done_callback(self._feeder_finished)

        logger.info(
            "Starting segment watcher",
            extra={"directory": str(self._directory), "bot_id": self._logical_id}
        )
        return self.stop

    def submit(self, event: DirectoryEvent) -> bool:
        """Queue a directory event. Returns False once the watcher is stopping."""
        if not self._accepting:
            logger.debug(
                "Dropping event after stop",
                extra={"segment_file": event.filename}
            )
            return False
        self._events.put_nowait(event)
        return True

    async def wait_until_idle(self) -> None:
        """Wait until queued events are handled and started uploads have finished."""
        await self._events.join()
        await self._wait_for_uploads()

    async def stop(self) -> None:
        """
        Stop watching and drain.

        submit() is refused immediately and the event source is closed.
        Events already queued, plus those from the source's final scan, are
        still handled, then the cursor segment is uploaded if needed, then all
        in-flight uploads are awaited. Safe to call more than once; every
        call waits for the same drain. There is no timeout.
        """
        if self._drain_task is None:
            self._drain_task = asyncio.create_task(self._drain())
        await asyncio.shield(self._drain_task)

    # -----------------------------------------------------------------------
    # Event processing
    # -----------------------------------------------------------------------

    async def _feed(self, source: DirectoryEventSource) -> None:
        # Bypasses submit(): the source's final scan after close() must still land
        async for event in source.events():
            self._events.put_nowait(event)

    def _feeder_finished(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        logger.error(
            "Directory event source failed, no further segments will be observed",
            extra={"directory": str(self._directory), "error": str(task.exception())},
            exc_info=task.exception(),
        )

    async def _process_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                if event is _STOP:
                    return
                await self._handle_event(event)
            except Exception as e:
                # One bad event must not stop the watcher
                logger.error(
                    "Error handling directory event",
                    extra={"segment_file": getattr(event, "filename", None), "error": str(e)},
                    exc_info=e,
                )
            finally:
                self._events.task_done()

    async def _handle_event(self, event: DirectoryEvent) -> None:
        filename = event.filename
        if event.kind is EventKind.DELETED or not is_segment_filename(filename):
            return

        # The current segment keeps producing events while it grows
        if filename == self._cursor:
            return

        if self._is_known(filename):
            logger.debug("Ignoring event for known segment", extra={"segment_file": filename})
            return

        logger.info(
            "New segment detected",
            extra={"segment_file": filename, "event": event.kind.value}
        )

        previous = self._cursor
        if previous is not None:
            logger.info(
                "Uploading previous segment",
                extra={"previous": previous, "current": filename}
            )
            self._superseded.add(previous)
            self._start_upload(previous)

        self._cursor = filename

    def _is_known(self, filename: str) -> bool:
        return (
            filename in self._uploaded
            or filename in self._in_flight
            or filename in self._superseded
        )

    # -----------------------------------------------------------------------
    # Uploads
    # -----------------------------------------------------------------------

    def _start_upload(self, filename: str) -> None:
        if filename in self._uploaded or filename in self._in_flight:
            return
        task = asyncio.create_task(self._upload_segment(filename))
        self._in_flight[filename] = task
        task.add_done_callback(partial(self._upload_finished, filename))

    def _upload_finished(self, filename: str, task: asyncio.Task) -> None:
        self._in_flight.pop(filename, None)

    async def _upload_segment(self, filename: str) -> Optional[SegmentUpload]:
        if filename in self._uploaded:
            return None

        key = None
        try:
            sequence_number = parse_segment_number(filename)
            key = build_segment_key(self._logical_id, sequence_number)
            data = await self._filesystem.read_bytes(self._directory / filename)

            logger.info(
                "Uploading segment",
                extra={
                    "sequence_number": sequence_number,
                    "size_mb": round(len(data) / 1024 / 1024, 2),
                    "key": key,
                }
            )

            await self._storage.put_object(
                key,
                data,
                SEGMENT_CONTENT_TYPE,
                metadata={
                    "bot-id": self._logical_id,
                    "segment-number": str(sequence_number),
                },
            )
        except Exception as e:
            self._failed[filename] = str(e)
            logger.error(
                "Error uploading segment",
                extra={"segment_file": filename, "key": key, "error": str(e)},
                exc_info=e,
            )
            return None

        self._uploaded.add(filename)
        self._failed.pop(filename, None)
        upload = SegmentUpload(filename=filename, key=key, sequence_number=sequence_number)
        self._completed.append(upload)

        logger.info(
            "Uploaded segment",
            extra={"sequence_number": sequence_number, "key": key}
        )

        await self._notify(upload)
        return upload

    async def _notify(self, upload: SegmentUpload) -> None:
        if self._on_segment_uploaded is None:
            return
        try:
            result = self._on_segment_uploaded(upload.key, upload.sequence_number)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Segment upload callback failed",
                extra={"key": upload.key, "error": str(e)},
                exc_info=e,
            )

    async def _wait_for_uploads(self) -> None:
        pending = list(self._in_flight.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -----------------------------------------------------------------------
    # Drain
    # -----------------------------------------------------------------------

    async def _drain(self) -> None:
        logger.info("Stopping segment watcher", extra={"directory": str(self._directory)})
        self._accepting = False

        # The source ends its event stream after one last look at the
        # directory, so a rotation just before stop is still seen
        if self._event_source is not None:
            self._event_source.close()
        if self._feeder is not None:
            await asyncio.gather(self._feeder, return_exceptions=True)

        if self._processor is not None:
            self._events.put_nowait(_STOP)
            await self._processor

        cursor = self._cursor
        if cursor is not None and cursor not in self._uploaded and cursor not in self._in_flight:
            logger.info("Uploading final segment", extra={"segment_file": cursor})
            await self._upload_segment(cursor)

        await self._wait_for_uploads()

        logger.info(
            "Segment watcher stopped",
            extra={
                "uploaded": len(self._uploaded),
                "failed": len(self._failed),
            }
        )


def watch_segments(
    storage: ObjectStore,
    filesystem: FileSystem,
    directory: Union[str, Path],
    logical_id: str,
    on_segment_uploaded: Optional[SegmentCallback] = None,
    event_source: Optional[DirectoryEventSource] = None,
) -> StopWatching:
    """
    Start watching directory for segments and return the stop function.

    Awaiting the returned function stops the watcher and uploads the last
    segment. Must be called from a running event loop.
    """
    watcher = SegmentWatcher(
        storage,
        filesystem,
        directory,
        logical_id,
        on_segment_uploaded=on_segment_uploaded,
        event_source=event_source,
    )
    return watcher.start()
