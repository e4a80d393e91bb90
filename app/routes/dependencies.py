"""Service wiring for the API routes.

The metadata store, blob store and extractor are process-wide singletons;
services are cheap wrappers built per request. Tests swap any of these
through ``app.dependency_overrides``.
"""

from fastapi import Depends

from app.core.config import settings
from app.services.metadata_store import MetadataStore
from app.services.storage import StorageBackendInterface, get_default_storage
from app.services.thumbnails import ThumbnailExtractor
from app.services.upload_service import UploadService
from app.services.video_query import VideoQueryService

_metadata_store: MetadataStore | None = None
_extractor: ThumbnailExtractor | None = None


def get_metadata_store() -> MetadataStore:
    """Get the metadata store (singleton). Loaded at application startup."""
    global _metadata_store
    if _metadata_store is None:
        _metadata_store = MetadataStore(settings.VIDEOS_DB_FILE)
    return _metadata_store


def get_storage() -> StorageBackendInterface:
    return get_default_storage()


def get_thumbnail_extractor() -> ThumbnailExtractor:
    global _extractor
    if _extractor is None:
        _extractor = ThumbnailExtractor(
            ffmpeg_path=settings.FFMPEG_PATH,
            ffprobe_path=settings.FFPROBE_PATH,
            timeout=settings.THUMBNAIL_TIMEOUT_SECONDS,
        )
    return _extractor


def get_upload_service(
    store: MetadataStore = Depends(get_metadata_store),
    storage: StorageBackendInterface = Depends(get_storage),
    extractor: ThumbnailExtractor = Depends(get_thumbnail_extractor),
) -> UploadService:
    return UploadService(store, storage, extractor)


def get_query_service(
    store: MetadataStore = Depends(get_metadata_store),
    storage: StorageBackendInterface = Depends(get_storage),
) -> VideoQueryService:
    return VideoQueryService(store, storage)
