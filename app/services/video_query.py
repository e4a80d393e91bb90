"""Read, view and delete operations over stored videos."""

import asyncio
import logging

from app.core.config import Settings, settings
from app.models.video import ALLOWED_VIDEO_TYPES, VideoRecord
from app.services.metadata_store import MetadataStore
from app.services.storage import StorageBackendInterface

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class VideoQueryService:
    """Lists, fetches and deletes video records."""

    def __init__(
        self,
        store: MetadataStore,
        storage: StorageBackendInterface,
        config: Settings | None = None,
    ):
        self.store = store
        self.storage = storage
        self.config = config or settings

    async def list_all(self) -> list[VideoRecord]:
        """All records, newest upload first. Has no side effects."""
        records = await self.store.snapshot()
        # sorted() is stable, so equal timestamps keep storage order
        return sorted(records, key=lambda r: r.uploaded_at, reverse=True)

    async def get_by_id(self, video_id: str) -> VideoRecord:
        """Fetch one record, counting the fetch as a view.

        Note that this persists the store: a "get" mutates state.

        Raises:
            NotFoundError: No record with this id.
            PersistenceError: The incremented count could not be saved.
        """
        return await self.store.increment_views(video_id)

    async def delete_by_id(self, video_id: str) -> VideoRecord:
        """Remove a record, then delete its blobs on a best-effort basis.

        Blob deletion failures are logged and never undo the metadata removal.

        Raises:
            NotFoundError: No record with this id.
            PersistenceError: The removal could not be saved; blobs are untouched.
        """
        record = await self.store.remove(video_id)

        keys = [k for k in (record.file_key, record.thumbnail_key) if k]
        for key in keys:
            try:
                deleted = await asyncio.wait_for(
                    self.storage.delete(key), timeout=self.config.STORAGE_TIMEOUT_SECONDS
                )
                if deleted:
                    logger.info(f"File deleted from storage: {key}")
                else:
                    logger.warning(f"File already missing from storage: {key}")
            except Exception as e:
                logger.warning(f"Could not delete file from storage: {key}: {e}")

        logger.info(f"Video deleted: {record.title} (ID: {record.id})")
        return record

    async def health(self) -> dict:
        return {
            "status": "OK",
            "message": "Video platform API is running",
            "videosCount": await self.store.count(),
        }

    async def storage_info(self) -> dict:
        """Usage and limits of the configured blob store."""
        records = await self.store.snapshot()
        total_bytes = sum(r.file_size for r in records)
        quota = self.config.STORAGE_QUOTA_BYTES

        info = {
            "backend": self.storage.name,
            "bucket": self.storage.bucket_name,
            "totalVideos": len(records),
            "totalSize": total_bytes,
            "totalSizeMB": round(total_bytes / BYTES_PER_MB, 2),
            "quotaBytes": quota,
            "quotaMB": round(quota / BYTES_PER_MB, 2),
            "usagePercent": round(total_bytes / quota * 100, 2) if quota else None,
            "maxFileSizeMB": self.config.MAX_FILE_SIZE_MB,
            "allowedTypes": sorted(set(ALLOWED_VIDEO_TYPES)),
            "signedUploads": self.storage.supports_signed_upload,
        }

        try:
            usage = await asyncio.wait_for(
                self.storage.usage(), timeout=self.config.STORAGE_TIMEOUT_SECONDS
            )
            info["storedObjects"] = usage.object_count
            info["storedBytes"] = usage.total_bytes
        except Exception as e:
            logger.warning(f"Could not read storage usage: {e}")
            info["storedObjects"] = None
            info["storedBytes"] = None

        return info
