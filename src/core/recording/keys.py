"""
Storage key derivation.

Whole-file keys embed a fresh uuid4 so two uploads never collide.
Segment keys are a pure function of (logical id, sequence number) so
re-uploading a segment always overwrites the same object.
"""

import logging
import re
from typing import Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

SEGMENT_PATTERN = re.compile(r"segment_(\d+)\.mp4")
SEGMENT_SUFFIX = ".mp4"
SEGMENT_CONTENT_TYPE = "video/mp4"
SEGMENT_NUMBER_WIDTH = 3


def content_type_extension(content_type: str) -> str:
    """
    File extension for a MIME type: the subtype without parameters.

    "video/mp4" -> "mp4", "audio/webm;codecs=opus" -> "webm"
    """
    if "/" not in content_type:
        raise ValueError(f"Invalid content type: {content_type!r}")
    subtype = content_type.split("/", 1)[1]
    return subtype.split(";", 1)[0].strip()


def build_recording_key(
    platform: str,
    content_type: str,
    token: Optional[str] = None,
) -> str:
    """Key for a whole-file recording: recordings/<token>-<platform>-recording.<ext>"""
    token = token or str(uuid4())
    ext = content_type_extension(content_type)
    return f"recordings/{token}-{platform}-recording.{ext}"


def build_segment_key(logical_id: str, sequence_number: int) -> str:
    """Key for a segment: recordings/<logical_id>/segment_NNN.mp4"""
    return f"recordings/{logical_id}/segment_{sequence_number:0{SEGMENT_NUMBER_WIDTH}d}.mp4"


def parse_segment_number(filename: str) -> int:
    """
    Extract the sequence number from a segment filename.

    Falls back to 0 when the name doesn't match, so an unexpected file
    never takes the watcher down.
    """
    match = SEGMENT_PATTERN.search(filename)
    if match is None:
        logger.warning(
            "Segment filename did not match pattern, using sequence 0",
            extra={"segment_file": filename}
        )
        return 0
    return int(match.group(1))


def is_segment_filename(filename: Optional[str]) -> bool:
    return bool(filename) and filename.endswith(SEGMENT_SUFFIX)
