"""Application configuration using pydantic-settings."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Video Hosting API"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Metadata document and working directories
    DATA_DIR: str = "./data"
    VIDEOS_DB_FILE: str = "./data/videos-db.json"
    TEMP_DIR: str = "./temp"

    # Blob storage: "local", "s3" or "gcs" (Firebase Storage buckets are GCS buckets)
    STORAGE_BACKEND: str = "local"
    STORAGE_LOCAL_PATH: str = "./uploads"
    MEDIA_URL_PREFIX: str = "/media"
    PUBLIC_BASE_URL: str = ""  # Prepended to local media URLs when set

    STORAGE_S3_BUCKET: str | None = None
    STORAGE_S3_REGION: str = "us-east-1"
    STORAGE_S3_ENDPOINT: str | None = None
    STORAGE_S3_PREFIX: str = ""
    STORAGE_S3_PUBLIC_URL: str | None = None
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    STORAGE_GCS_BUCKET: str | None = None
    STORAGE_GCS_PROJECT: str | None = None
    STORAGE_GCS_CREDENTIALS_FILE: str | None = None
    STORAGE_GCS_PUBLIC_URL: str | None = None

    # Upload limits
    MAX_FILE_SIZE_MB: int = 100
    SIGNED_URL_TTL_SECONDS: int = 15 * 60
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024 * 1024  # 5 GB

    # Timeouts for blob storage and ffmpeg calls
    STORAGE_TIMEOUT_SECONDS: float = 120.0
    THUMBNAIL_TIMEOUT_SECONDS: float = 30.0

    # Video tooling
    FFMPEG_PATH: str = "ffmpeg"
    FFPROBE_PATH: str = "ffprobe"

    # Record defaults
    DEFAULT_CHANNEL: str = "Your Channel"
    PLACEHOLDER_THUMBNAIL_URL: str = (
        "https://via.placeholder.com/320x180/1a1a1a/ffffff?text={text}"
    )

    # Rate limiting (uploads only)
    RATE_LIMIT_ENABLED: bool = True
    UPLOAD_RATE_LIMIT: str = "30/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024


def ensure_directories(config: Settings) -> list[Path]:
    """Create the working directories the service writes into.

    Returns the directories that did not exist before.
    """
    created = []
    directories = [config.DATA_DIR, config.TEMP_DIR, Path(config.VIDEOS_DB_FILE).parent]
    if config.STORAGE_BACKEND.lower() == "local":
        directories.append(config.STORAGE_LOCAL_PATH)

    for directory in directories:
        path = Path(directory)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created directory: {path}")
            created.append(path)
    return created


settings = Settings()
