"""
Domain models for the recording upload pipeline.

These models describe what gets uploaded and what the watcher observes.
They have no dependencies on boto3, the filesystem, or configuration.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class ArtifactKind(Enum):
    """The two shapes a recording can take."""
    WHOLE_FILE = "whole_file"
    SEGMENT = "segment"


class EventKind(Enum):
    """Directory change kinds reported by an event source."""
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class RecordingArtifact:
    """
    A completed, uploadable unit.

    The pipeline owns local_path until the upload is confirmed. Whole-file
    recordings are then deleted; segments stay on disk for the recorder's
    own rotation policy.
    """
    local_path: Path
    content_type: str
    logical_id: str
    kind: ArtifactKind = ArtifactKind.WHOLE_FILE
    sequence_number: Optional[int] = None

    def __post_init__(self) -> None:
        if "/" not in self.content_type:
            raise ValueError(f"Invalid content type: {self.content_type!r}")
        if self.kind is ArtifactKind.SEGMENT:
            if self.sequence_number is None or self.sequence_number < 0:
                raise ValueError("Segment sequence number must be a non-negative integer")
        elif self.sequence_number is not None:
            raise ValueError("Whole-file recordings do not carry a sequence number")

    @property
    def is_segment(self) -> bool:
        return self.kind is ArtifactKind.SEGMENT


@dataclass(frozen=True)
class DirectoryEvent:
    """
    One change notification for a directory.

    Only the kind and the bare filename are guaranteed. Consumers must
    re-validate the filename before acting on it.
    """
    kind: EventKind
    filename: Optional[str]


@dataclass(frozen=True)
class SegmentUpload:
    """Result of a confirmed segment upload."""
    filename: str
    key: str
    sequence_number: int
