"""
Whole-file recording upload.

Reads a finished recording (waiting out busy/missing states), uploads it
under a fresh key, and deletes the local copy once the store confirms.
"""

import logging
from pathlib import Path
from typing import Union

from .availability import ReadRetryPolicy, wait_for_recording
from .keys import build_recording_key
from .models import ArtifactKind, RecordingArtifact
from .protocols import FileSystem, ObjectStore

logger = logging.getLogger(__name__)

# Returned when nothing was uploaded. Callers must treat it as a final failure.
NO_UPLOAD = ""


class RecordingUploader:
    """
    Uploads completed whole-file recordings.

    The local file is deleted only after a confirmed upload. A failed or
    ambiguous upload leaves the file in place and returns NO_UPLOAD.
    """

    def __init__(
        self,
        storage: ObjectStore,
        filesystem: FileSystem,
        retry_policy: ReadRetryPolicy = ReadRetryPolicy(),
    ) -> None:
        self._storage = storage
        self._filesystem = filesystem
        self._retry_policy = retry_policy

    async def upload_recording(
        self,
        path: Union[str, Path],
        content_type: str,
        logical_id: str,
        platform: str,
    ) -> str:
        """
        Upload the recording at path and return its storage key.

        Args:
            path: Finished recording file
            content_type: MIME type, its subtype becomes the key extension
            logical_id: Bot/session id, attached as object metadata
            platform: Meeting platform name embedded in the key

        Returns:
            The storage key, or NO_UPLOAD ("") if the upload failed.

        Raises:
            RecordingNotFoundError: the file never appeared
            OSError: the file could not be read for another reason
        """
        artifact = RecordingArtifact(
            local_path=Path(path),
            content_type=content_type,
            logical_id=logical_id,
            kind=ArtifactKind.WHOLE_FILE,
        )
        return await self.upload_artifact(artifact, platform)

    async def upload_artifact(self, artifact: RecordingArtifact, platform: str) -> str:
        """
        Upload an already-built whole-file artifact.

        Same contract as upload_recording: returns the key or NO_UPLOAD,
        and raises if the file can't be read. Segment artifacts are
        rejected with ValueError.
        """
        if artifact.is_segment:
            raise ValueError("Segments are uploaded by the segment watcher")

        data = await wait_for_recording(
            artifact.local_path, self._filesystem, self._retry_policy
        )

        key = build_recording_key(platform, artifact.content_type)

        try:
            await self._storage.put_object(
                key,
                data,
                artifact.content_type,
                metadata={"bot-id": artifact.logical_id, "platform": platform},
            )
        except Exception as e:
            logger.error(
                "Failed to upload recording",
                extra={
                    "path": str(artifact.local_path),
                    "key": key,
                    "bot_id": artifact.logical_id,
                    "error": str(e),
                },
                exc_info=e,
            )
            return NO_UPLOAD

        logger.info(
            "Uploaded recording",
            extra={
                "key": key,
                "bot_id": artifact.logical_id,
                "size_bytes": len(data),
            }
        )

        try:
            await self._filesystem.delete(artifact.local_path)
        except OSError as e:
            # The object is already stored, the key is still valid
            logger.warning(
                "Failed to delete local recording after upload",
                extra={"path": str(artifact.local_path), "error": str(e)}
            )

        return key
