"""
Tests for settings loading and validation.
"""

import pytest

from src.config.settings import Settings, get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "AWS_REGION",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_BUCKET_NAME",
        "AWS_ENDPOINT_URL",
        "STORAGE_MOCK_MODE",
        "SEGMENT_DIR",
        "BOT_ID",
        "RECORDING_READ_MAX_MISSING_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    def test_loads_from_environment(self, clean_env):
        clean_env.setenv("AWS_REGION", "us-east-2")
        clean_env.setenv("AWS_BUCKET_NAME", "recordings")
        clean_env.setenv("RECORDING_READ_MAX_MISSING_RETRIES", "3")

        settings = Settings(_env_file=None)

        assert settings.aws_region == "us-east-2"
        assert settings.read_retry_policy().max_missing_attempts == 4

    def test_defaults_match_recorder_behaviour(self, clean_env):
        settings = Settings(_env_file=None)

        policy = settings.read_retry_policy()
        assert policy.interval_seconds == 1.0
        assert policy.max_missing_attempts == 11
        assert settings.recording_content_type == "video/mp4"

    def test_storage_config(self, clean_env):
        settings = Settings(
            _env_file=None,
            aws_region="us-east-1",
            aws_bucket_name="recordings",
            aws_endpoint_url="http://localhost:9000",
        )

        config = settings.storage_config()

        assert config.bucket_name == "recordings"
        assert config.endpoint_url == "http://localhost:9000"
        assert not config.has_explicit_credentials

    def test_get_settings_is_cached(self, clean_env):
        assert get_settings() is get_settings()


class TestValidateRequiredFields:
    def test_storage_fields_required(self, clean_env):
        missing = Settings(_env_file=None).validate_required_fields()

        assert "AWS_REGION" in missing
        assert "AWS_BUCKET_NAME" in missing

    def test_mock_mode_needs_no_storage(self, clean_env):
        settings = Settings(_env_file=None, storage_mock_mode=True)

        assert settings.validate_required_fields() == []

    def test_half_a_credential_pair_is_reported(self, clean_env):
        settings = Settings(
            _env_file=None,
            aws_region="us-east-1",
            aws_bucket_name="recordings",
            aws_access_key_id="AKIA",
        )

        assert settings.validate_required_fields() == ["AWS_SECRET_ACCESS_KEY"]

    def test_segment_dir_needs_bot_id(self, clean_env):
        settings = Settings(_env_file=None, storage_mock_mode=True, segment_dir="/segments")

        assert settings.validate_required_fields() == ["BOT_ID"]
