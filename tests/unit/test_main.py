"""
Tests for the session runner wiring.

These run the real local filesystem and polling watcher against a temp
directory, with the in-memory store in place of S3.
"""

import asyncio

import pytest

from src.config.settings import Settings
from src.infrastructure.storage.client import MockStorageClient, S3StorageClient
from src.main import create_pipeline, main, run_recording_session


def session_settings(tmp_path, **overrides) -> Settings:
    values = {
        "_env_file": None,
        "storage_mock_mode": True,
        "bot_id": "bot-1",
        "meeting_platform": "google-meet",
        "segment_poll_interval_seconds": 0.01,
        "recording_read_retry_interval_seconds": 0,
    }
    values.update(overrides)
    return Settings(**values)


async def wait_for(condition, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestCreatePipeline:
    def test_mock_mode_uses_memory_store(self, tmp_path):
        pipeline = create_pipeline(session_settings(tmp_path))

        assert isinstance(pipeline.storage, MockStorageClient)
        assert pipeline.retry_policy.max_missing_attempts == 11

    def test_real_store_from_settings(self, tmp_path):
        settings = session_settings(
            tmp_path,
            storage_mock_mode=False,
            aws_region="us-east-1",
            aws_bucket_name="recordings",
        )

        pipeline = create_pipeline(settings)

        assert isinstance(pipeline.storage, S3StorageClient)
        assert pipeline.storage.bucket_name == "recordings"


class TestRunRecordingSession:
    @pytest.mark.asyncio
    async def test_uploads_segments_and_final_recording(self, tmp_path):
        segment_dir = tmp_path / "segments"
        segment_dir.mkdir()
        (segment_dir / "segment_000.mp4").write_bytes(b"first")
        recording = tmp_path / "recording.mp4"
        recording.write_bytes(b"whole")

        settings = session_settings(
            tmp_path, segment_dir=str(segment_dir), recording_path=str(recording)
        )
        storage = MockStorageClient()
        pipeline = create_pipeline(settings, storage=storage)
        stop_event = asyncio.Event()

        session = asyncio.create_task(run_recording_session(settings, stop_event, pipeline))
        await asyncio.sleep(0.05)
        (segment_dir / "segment_001.mp4").write_bytes(b"second")
        await wait_for(lambda: "recordings/bot-1/segment_000.mp4" in storage.objects)
        stop_event.set()
        result = await session

        assert sorted(result.segment_keys) == [
            "recordings/bot-1/segment_000.mp4",
            "recordings/bot-1/segment_001.mp4",
        ]
        assert result.recording_uploaded
        assert result.recording_key.endswith("-google-meet-recording.mp4")
        assert storage.objects[result.recording_key].data == b"whole"
        assert not recording.exists()

    @pytest.mark.asyncio
    async def test_failed_recording_upload_keeps_file(self, tmp_path):
        recording = tmp_path / "recording.mp4"
        recording.write_bytes(b"whole")
        settings = session_settings(tmp_path, recording_path=str(recording))
        storage = MockStorageClient()
        storage.fail_all = True
        stop_event = asyncio.Event()
        stop_event.set()

        result = await run_recording_session(
            settings, stop_event, create_pipeline(settings, storage=storage)
        )

        assert result.recording_key == ""
        assert not result.recording_uploaded
        assert recording.exists()


class TestMain:
    @pytest.mark.asyncio
    async def test_missing_configuration_exits_non_zero(self, monkeypatch):
        for name in ("AWS_REGION", "AWS_BUCKET_NAME", "STORAGE_MOCK_MODE"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr(
            "src.main.get_settings", lambda: Settings(_env_file=None)
        )

        assert await main() == 1

    @pytest.mark.asyncio
    async def test_unreadable_recording_exits_non_zero(self, monkeypatch, caplog):
        async def unreadable(settings, stop_event, pipeline=None):
            raise PermissionError(13, "Permission denied", "/recordings/meeting.mp4")

        monkeypatch.setattr(
            "src.main.get_settings",
            lambda: Settings(_env_file=None, storage_mock_mode=True),
        )
        monkeypatch.setattr("src.main.run_recording_session", unreadable)

        assert await main() == 1
        assert "Recording file unavailable" in caplog.text
