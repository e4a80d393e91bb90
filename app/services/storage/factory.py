"""Factory for creating storage backends based on configuration."""

import logging
from dataclasses import dataclass

from app.core.config import Settings, settings
from app.models.video import StorageBackend
from app.services.storage.base import StorageBackendInterface
from app.services.storage.local import LocalStorageBackend

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Configuration for storage backend."""

    backend: StorageBackend = StorageBackend.LOCAL

    # Local storage settings
    local_base_path: str = "./uploads"
    local_url_prefix: str = "/media"
    public_base_url: str = ""

    # S3 settings
    s3_bucket_name: str | None = None
    s3_region_name: str = "us-east-1"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    s3_prefix: str = ""
    s3_public_url: str | None = None

    # GCS settings
    gcs_bucket_name: str | None = None
    gcs_project: str | None = None
    gcs_credentials_file: str | None = None
    gcs_public_url: str | None = None

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "StorageConfig":
        """Create configuration from application settings."""
        config = config or settings

        try:
            backend = StorageBackend(config.STORAGE_BACKEND.lower())
        except ValueError as e:
            raise ValueError(f"Unknown storage backend: {config.STORAGE_BACKEND}") from e

        return cls(
            backend=backend,
            local_base_path=config.STORAGE_LOCAL_PATH,
            local_url_prefix=config.MEDIA_URL_PREFIX,
            public_base_url=config.PUBLIC_BASE_URL,
            s3_bucket_name=config.STORAGE_S3_BUCKET,
            s3_region_name=config.STORAGE_S3_REGION,
            s3_access_key_id=config.AWS_ACCESS_KEY_ID,
            s3_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
            s3_endpoint_url=config.STORAGE_S3_ENDPOINT,
            s3_prefix=config.STORAGE_S3_PREFIX,
            s3_public_url=config.STORAGE_S3_PUBLIC_URL,
            gcs_bucket_name=config.STORAGE_GCS_BUCKET,
            gcs_project=config.STORAGE_GCS_PROJECT,
            gcs_credentials_file=config.STORAGE_GCS_CREDENTIALS_FILE,
            gcs_public_url=config.STORAGE_GCS_PUBLIC_URL,
        )


def get_storage_backend(config: StorageConfig | None = None) -> StorageBackendInterface:
    """Create a storage backend based on configuration.

    Args:
        config: Storage configuration. If None, uses application settings.

    Returns:
        Configured storage backend instance.
    """
    if config is None:
        config = StorageConfig.from_settings()

    if config.backend == StorageBackend.S3:
        if not config.s3_bucket_name:
            raise ValueError("S3 bucket name is required for S3 backend")

        # Imported lazily so the local backend works without the AWS SDK configured
        from app.services.storage.s3 import S3StorageBackend

        logger.info(f"Using S3 storage backend (bucket={config.s3_bucket_name})")
        return S3StorageBackend(
            bucket_name=config.s3_bucket_name,
            region_name=config.s3_region_name,
            aws_access_key_id=config.s3_access_key_id,
            aws_secret_access_key=config.s3_secret_access_key,
            endpoint_url=config.s3_endpoint_url,
            prefix=config.s3_prefix,
            public_url=config.s3_public_url,
        )

    if config.backend == StorageBackend.GCS:
        if not config.gcs_bucket_name:
            raise ValueError("GCS bucket name is required for GCS backend")

        from app.services.storage.gcs import GCSStorageBackend

        logger.info(f"Using GCS storage backend (bucket={config.gcs_bucket_name})")
        return GCSStorageBackend(
            bucket_name=config.gcs_bucket_name,
            project=config.gcs_project,
            credentials_file=config.gcs_credentials_file,
            public_url=config.gcs_public_url,
        )

    logger.info(f"Using local storage backend (path={config.local_base_path})")
    return LocalStorageBackend(
        base_path=config.local_base_path,
        url_prefix=config.local_url_prefix,
        public_base_url=config.public_base_url,
    )


# Global storage backend instance (lazily initialized)
_storage_backend: StorageBackendInterface | None = None


def get_default_storage() -> StorageBackendInterface:
    """Get the default storage backend (singleton).

    Uses application settings for configuration.
    """
    global _storage_backend
    if _storage_backend is None:
        _storage_backend = get_storage_backend()
    return _storage_backend
