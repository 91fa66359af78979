"""
Recording upload service entry point.

Builds the pipeline from settings, watches the segment directory for the
length of the session, and ships the finished recording when told to stop.
The recording process (or its supervisor) ends the session with SIGTERM.

For local development:
    STORAGE_MOCK_MODE=true SEGMENT_DIR=/tmp/segments BOT_ID=dev python -m src.main
"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass, field
from typing import Optional

from .config.settings import Settings, get_settings
from .core.recording.availability import ReadRetryPolicy
from .core.recording.protocols import FileSystem, ObjectStore
from .core.recording.segments import SegmentWatcher
from .core.recording.uploader import NO_UPLOAD, RecordingUploader
from .infrastructure.filesystem import LocalFileSystem, PollingDirectoryWatcher
from .infrastructure.storage.client import create_storage_client

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


@dataclass
class RecordingPipeline:
    """Collaborators for one recording session."""
    storage: ObjectStore
    filesystem: FileSystem
    uploader: RecordingUploader
    retry_policy: ReadRetryPolicy


@dataclass
class SessionResult:
    """What a session managed to upload."""
    recording_key: Optional[str] = None
    segment_keys: list[str] = field(default_factory=list)
    failed_segments: dict[str, str] = field(default_factory=dict)

    @property
    def recording_uploaded(self) -> bool:
        return bool(self.recording_key)


def create_pipeline(
    settings: Settings,
    storage: Optional[ObjectStore] = None,
    filesystem: Optional[FileSystem] = None,
) -> RecordingPipeline:
    """
    Build the pipeline collaborators from settings.

    storage and filesystem can be passed in to override the configured ones
    (tests pass in-memory fakes).
    """
    if storage is None:
        config = None if settings.storage_mock_mode else settings.storage_config()
        storage = create_storage_client(config, mock_mode=settings.storage_mock_mode)
    if filesystem is None:
        filesystem = LocalFileSystem()

    retry_policy = settings.read_retry_policy()
    return RecordingPipeline(
        storage=storage,
        filesystem=filesystem,
        uploader=RecordingUploader(storage, filesystem, retry_policy),
        retry_policy=retry_policy,
    )


async def run_recording_session(
    settings: Settings,
    stop_event: asyncio.Event,
    pipeline: Optional[RecordingPipeline] = None,
) -> SessionResult:
    """
    Run one session until stop_event is set.

    Segments are uploaded while the session runs and the last one is
    flushed on stop. The whole-file recording, if configured, is uploaded
    after the watcher has drained.
    """
    pipeline = pipeline or create_pipeline(settings)
    result = SessionResult()

    watcher = None
    if settings.segment_dir:
        watcher = SegmentWatcher(
            pipeline.storage,
            pipeline.filesystem,
            settings.segment_dir,
            settings.bot_id,
            on_segment_uploaded=lambda key, number: result.segment_keys.append(key),
            event_source=PollingDirectoryWatcher(
                settings.segment_dir,
                interval_seconds=settings.segment_poll_interval_seconds,
            ),
        )
        watcher.start()

    await stop_event.wait()
    logger.info("Recording session ending", extra={"bot_id": settings.bot_id})

    if watcher is not None:
        await watcher.stop()
        result.failed_segments = watcher.failed_segments

    if settings.recording_path:
        result.recording_key = await pipeline.uploader.upload_recording(
            settings.recording_path,
            settings.recording_content_type,
            settings.bot_id,
            settings.meeting_platform,
        )
        if result.recording_key == NO_UPLOAD:
            logger.error(
                "Recording was not uploaded",
                extra={"path": settings.recording_path}
            )

    logger.info(
        "Recording session finished",
        extra={
            "recording_key": result.recording_key,
            "segments_uploaded": len(result.segment_keys),
            "segments_failed": len(result.failed_segments),
        }
    )
    return result


async def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        "Recording uploader starting",
        extra={
            "bot_id": settings.bot_id,
            "segment_dir": settings.segment_dir,
            "mock_mode": settings.storage_mock_mode,
        }
    )

    try:
        result = await run_recording_session(settings, stop_event)
    except OSError as e:
        logger.error(
            "Recording file unavailable",
            extra={"path": settings.recording_path, "error": str(e)},
            exc_info=e,
        )
        return 1

    if settings.recording_path and not result.recording_uploaded:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
