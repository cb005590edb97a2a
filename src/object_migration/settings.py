"""Environment configuration and the process-wide S3 client."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pydantic_settings import BaseSettings, SettingsConfigDict

from object_migration.models.params import MigrationParams

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


class MigrationSettings(BaseSettings):
    """Settings for the migration engine.

    Read from environment variables (or a .env file), all prefixed with
    ``MIGRATION_``:
    - MIGRATION_ENDPOINT_URL: URL of the S3 compatible store
    - MIGRATION_REGION: region of the store
    - MIGRATION_AWS_ACCESS_KEY_ID / MIGRATION_AWS_SECRET_ACCESS_KEY: store credentials
    - MIGRATION_COLLAB_ORIGIN: base URL of the collaboration service
    - MIGRATION_JOBS_BUCKET: bucket holding resumable job records
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MIGRATION_",
        extra="ignore",
        env_parse_none_str="null",
    )

    endpoint_url: str | None = None
    region: str = "auto"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""

    collab_origin: str = "http://localhost:4711"
    jobs_bucket: str = "migration-jobs"

    batch_ceiling: int = 900
    page_size: int = 300
    max_concurrency: int = 50
    # Seconds; "null" disables the per-key deadline
    per_key_timeout: float | None = 60.0
    signed_url_ttl: int = 3600
    page_extension: str = ".html"

    def params(self) -> MigrationParams:
        """Engine tunables taken from these settings."""
        return MigrationParams(
            batch_ceiling=self.batch_ceiling,
            page_size=self.page_size,
            max_concurrency=self.max_concurrency,
            per_key_timeout=self.per_key_timeout,
            signed_url_ttl=self.signed_url_ttl,
            page_extension=self.page_extension,
        )

    def create_client(self) -> S3Client:
        """Create an S3 client from the settings."""

        import boto3

        return boto3.client(  # pyright: ignore[reportUnknownMemberType]
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=self.aws_access_key_id or None,
            aws_secret_access_key=self.aws_secret_access_key or None,
        )


_client: S3Client | None = None
_client_lock = threading.Lock()


def get_client(settings: MigrationSettings | None = None) -> S3Client:
    """Return the process-wide S3 client, creating it on first use."""
    global _client
    with _client_lock:
        if _client is None:
            _client = (settings or MigrationSettings()).create_client()
        return _client


def reset_client() -> None:
    """Drop the process-wide S3 client so the next call builds a fresh one."""
    global _client
    with _client_lock:
        _client = None
