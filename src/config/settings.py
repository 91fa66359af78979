"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Nothing under src/core reads these settings. The session runner turns them
into explicit config objects (StorageConfig, ReadRetryPolicy) and passes
those in.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.recording.availability import ReadRetryPolicy
from ..infrastructure.storage.client import StorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables,
    e.g. AWS_BUCKET_NAME or SEGMENT_DIR.
    """

    # Object storage (S3 or S3-compatible)
    aws_region: str = Field(
        default="",
        description="Region of the recordings bucket"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None,
        description="Access key for local development. Leave unset on AWS to use the default credential chain."
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None,
        description="Secret key paired with AWS_ACCESS_KEY_ID"
    )
    aws_bucket_name: str = Field(
        default="",
        description="Bucket that receives recordings and segments"
    )
    aws_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (MinIO, R2)"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real object storage. Enables local dev without a bucket."
    )

    # Whole-file availability wait
    recording_read_retry_interval_seconds: float = Field(
        default=1.0,
        description="Pause between attempts to read a recording that is busy or not yet written"
    )
    recording_read_max_missing_retries: int = Field(
        default=10,
        ge=0,
        description="Extra attempts allowed for a recording that does not exist yet"
    )

    # Segment watching
    segment_poll_interval_seconds: float = Field(
        default=0.5,
        gt=0,
        description="How often the segment directory is rescanned"
    )

    # Session metadata supplied by the recording process
    bot_id: str = Field(
        default="",
        description="Bot/session identifier used to namespace segment keys"
    )
    meeting_platform: str = Field(
        default="unknown",
        description="Meeting platform name embedded in whole-file recording keys"
    )
    recording_path: Optional[str] = Field(
        default=None,
        description="Completed recording to upload at the end of the session"
    )
    recording_content_type: str = Field(
        default="video/mp4",
        description="MIME type of the whole-file recording"
    )
    segment_dir: Optional[str] = Field(
        default=None,
        description="Directory the recorder writes rotating segment files into"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def storage_config(self) -> StorageConfig:
        """Build the explicit object store configuration."""
        return StorageConfig(
            bucket_name=self.aws_bucket_name,
            region=self.aws_region,
            access_key_id=self.aws_access_key_id,
            secret_access_key=self.aws_secret_access_key,
            endpoint_url=self.aws_endpoint_url,
        )

    def read_retry_policy(self) -> ReadRetryPolicy:
        return ReadRetryPolicy(
            interval_seconds=self.recording_read_retry_interval_seconds,
            max_missing_retries=self.recording_read_max_missing_retries,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        """
        missing = []

        if not self.bot_id and self.segment_dir:
            missing.append("BOT_ID")

        # Storage only required if not in mock mode
        if not self.storage_mock_mode:
            if not self.aws_region:
                missing.append("AWS_REGION")
            if not self.aws_bucket_name:
                missing.append("AWS_BUCKET_NAME")
            # Credentials are optional, but only as a pair
            if self.aws_access_key_id and not self.aws_secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")
            if self.aws_secret_access_key and not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
