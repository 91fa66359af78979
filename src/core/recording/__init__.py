"""
Recording upload pipeline.

Contains the whole-file uploader, the segment watcher, key derivation,
and the collaborator protocols they depend on.
"""

from .availability import ReadRetryPolicy, RecordingNotFoundError, wait_for_recording
from .keys import (
    SEGMENT_CONTENT_TYPE,
    build_recording_key,
    build_segment_key,
    content_type_extension,
    parse_segment_number,
)
from .models import (
    ArtifactKind,
    DirectoryEvent,
    EventKind,
    RecordingArtifact,
    SegmentUpload,
)
from .protocols import DirectoryEventSource, FileSystem, ObjectStore
from .segments import SegmentWatcher, StopWatching, watch_segments
from .uploader import NO_UPLOAD, RecordingUploader

__all__ = [
    "ArtifactKind",
    "DirectoryEvent",
    "DirectoryEventSource",
    "EventKind",
    "FileSystem",
    "NO_UPLOAD",
    "ObjectStore",
    "ReadRetryPolicy",
    "RecordingArtifact",
    "RecordingNotFoundError",
    "RecordingUploader",
    "SEGMENT_CONTENT_TYPE",
    "SegmentUpload",
    "SegmentWatcher",
    "StopWatching",
    "build_recording_key",
    "build_segment_key",
    "content_type_extension",
    "parse_segment_number",
    "wait_for_recording",
    "watch_segments",
]
