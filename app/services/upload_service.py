"""Upload lifecycle for new videos.

This service provides:
- Server-side uploads: validate, store the video, derive a thumbnail, commit metadata
- Two-phase direct uploads: issue a signed write URL, then commit metadata
  for the key the client wrote to

Blob and FFmpeg work never holds the metadata lock; only the final append does.
"""

import asyncio
import logging
import mimetypes
import time
import uuid
from collections.abc import Awaitable
from pathlib import PurePosixPath
from typing import TypeVar
from urllib.parse import quote

from app.core.config import Settings, settings
from app.core.exceptions import (
    ConflictError,
    StorageError,
    ValidationError,
    VideoServiceError,
)
from app.models.video import ALLOWED_VIDEO_TYPES, UploadTicket, VideoRecord, utcnow
from app.services.metadata_store import MetadataStore
from app.services.storage import StorageBackendInterface
from app.services.thumbnails import (
    FrameResult,
    ThumbnailExtractor,
    format_duration,
    render_placeholder,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_video_id() -> str:
    """Generate ``video_<epoch-ms>_<random>`` identifiers."""
    return f"video_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class UploadService:
    """Creates video records from uploaded or directly written blobs."""

    def __init__(
        self,
        store: MetadataStore,
        storage: StorageBackendInterface,
        extractor: ThumbnailExtractor,
        config: Settings | None = None,
    ):
        """Initialize upload service.

        Args:
            store: Metadata store records are committed to
            storage: Blob store for videos and thumbnails
            extractor: Thumbnail extractor
            config: Application settings (uses the global settings if not provided)
        """
        self.store = store
        self.storage = storage
        self.extractor = extractor
        self.config = config or settings

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_title(self, title: str | None) -> str:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        return title

    def _validate_mime_type(self, mime_type: str | None) -> str:
        mime_type = (mime_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_VIDEO_TYPES:
            raise ValidationError(
                f"Unsupported file type: {mime_type or 'unknown'}. "
                "Allowed types: mp4, webm, quicktime, avi",
                status_code=415,
            )
        return mime_type

    def check_size_limit(self, size: int) -> None:
        """Reject sizes over MAX_FILE_SIZE_MB with a 413."""
        if size > self.config.max_file_size_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {self.config.MAX_FILE_SIZE_MB}MB",
                status_code=413,
            )

    def _validate_size(self, size: int) -> None:
        if size <= 0:
            raise ValidationError("Video file is required")
        self.check_size_limit(size)

    @staticmethod
    def _extension_for(mime_type: str, filename: str | None) -> str:
        """Keep the original extension when it agrees with the mime type."""
        expected = ALLOWED_VIDEO_TYPES[mime_type]
        if filename:
            suffix = PurePosixPath(filename).suffix.lower()
            if suffix and mimetypes.types_map.get(suffix) == mime_type:
                return suffix
        return expected

    # =========================================================================
    # Blob helpers
    # =========================================================================

    async def _storage_call(self, operation: str, call: Awaitable[T]) -> T:
        """Await a blob store call, mapping failures and timeouts to StorageError."""
        try:
            return await asyncio.wait_for(call, timeout=self.config.STORAGE_TIMEOUT_SECONDS)
        except VideoServiceError:
            raise
        except asyncio.TimeoutError as e:
            raise StorageError(f"Storage timed out during {operation}") from e
        except Exception as e:
            logger.error(f"Storage failure during {operation}: {e}")
            raise StorageError(f"Failed to {operation}") from e

    async def _discard(self, key: str) -> None:
        try:
            await self._storage_call("delete blob", self.storage.delete(key))
        except StorageError as e:
            logger.warning(f"Could not delete unused blob {key}: {e}")

    def _placeholder_url(self, title: str) -> str:
        return self.config.PLACEHOLDER_THUMBNAIL_URL.format(text=quote(title[:20]))

    async def _store_thumbnail(
        self, video_id: str, title: str, image: bytes | None
    ) -> tuple[str | None, str, bool]:
        """Store the extracted frame, or the placeholder when there is none.

        Returns:
            (thumbnail key, thumbnail URL, whether a real frame was stored)
        """
        generated = image is not None
        if image is None:
            image = render_placeholder(title)

        key = self.storage.generate_thumbnail_key(video_id)
        try:
            stored = await self._storage_call(
                "store thumbnail", self.storage.put(key, image, "image/jpeg")
            )
            url = stored.url or await self._storage_call(
                "resolve thumbnail URL", self.storage.get_url(key)
            )
        except StorageError as e:
            logger.warning(f"Thumbnail for {video_id} not stored, using hosted placeholder: {e}")
            return None, self._placeholder_url(title), False

        return key, url, generated

    # =========================================================================
    # Server-side upload
    # =========================================================================

    async def submit_upload(
        self,
        file_bytes: bytes,
        mime_type: str | None,
        title: str | None,
        description: str | None = "",
        filename: str | None = None,
    ) -> VideoRecord:
        """Store an uploaded video, derive its thumbnail and commit its record.

        Args:
            file_bytes: Raw video bytes
            mime_type: MIME type reported for the upload
            title: Video title (required)
            description: Optional description
            filename: Original filename, used for the key extension

        Returns:
            The committed VideoRecord

        Raises:
            ValidationError: Bad title, type, or size. Nothing is written.
            StorageError: The video could not be stored. No metadata is written.
            PersistenceError: The metadata document could not be saved. Blobs remain.
        """
        title = self._validate_title(title)
        mime_type = self._validate_mime_type(mime_type)
        self._validate_size(len(file_bytes))

        video_id = new_video_id()
        extension = self._extension_for(mime_type, filename)
        video_key = self.storage.generate_video_key(video_id, extension)

        stored = await self._storage_call(
            "store video", self.storage.put(video_key, file_bytes, mime_type)
        )
        logger.info(f"Stored video {video_id} at {video_key} ({stored.size_bytes} bytes)")

        try:
            frame, duration = await self.extractor.inspect(file_bytes, suffix=extension)
        except Exception as e:
            logger.warning(f"Thumbnail extraction crashed for {video_id}: {e}")
            frame, duration = FrameResult(error=str(e)), None
        if not frame.ok:
            logger.info(f"Using placeholder thumbnail for {video_id}: {frame.error}")
        thumbnail_key, thumbnail_url, generated = await self._store_thumbnail(
            video_id, title, frame.image
        )

        record = VideoRecord(
            id=video_id,
            title=title,
            description=(description or "").strip(),
            file_key=video_key,
            thumbnail_key=thumbnail_key,
            public_url=stored.url
            or await self._storage_call("resolve video URL", self.storage.get_url(video_key)),
            thumbnail_url=thumbnail_url,
            channel=self.config.DEFAULT_CHANNEL,
            views=0,
            duration=format_duration(duration),
            uploaded_at=utcnow(),
            file_size=len(file_bytes),
            mime_type=mime_type,
            thumbnail_generated=generated,
        )

        committed = await self.store.append(record)
        logger.info(f"Video saved: {committed.title} (ID: {committed.id})")
        return committed

    # =========================================================================
    # Direct (signed URL) upload
    # =========================================================================

    async def begin_upload(self, file_name: str | None, file_type: str | None) -> UploadTicket:
        """Issue a signed write URL for a direct-to-bucket upload.

        Produces no durable state; an abandoned upload needs no cleanup here.
        """
        if not file_name or not file_type:
            raise ValidationError("fileName and fileType are required")
        mime_type = self._validate_mime_type(file_type)

        file_key = self.storage.generate_direct_upload_key(file_name, int(time.time() * 1000))
        ttl = self.config.SIGNED_URL_TTL_SECONDS

        upload_url = await self._storage_call(
            "generate upload URL", self.storage.sign_upload(file_key, mime_type, ttl)
        )
        logger.info(f"Generated signed upload URL for {file_key}")

        return UploadTicket(
            upload_url=upload_url,
            file_key=file_key,
            bucket=self.storage.bucket_name or "",
            expires_in=f"{ttl // 60}m" if ttl % 60 == 0 else f"{ttl}s",
        )

    async def complete_upload(
        self,
        file_key: str | None,
        title: str | None,
        description: str | None = "",
        file_size: int | None = 0,
        file_type: str | None = None,
    ) -> VideoRecord:
        """Commit the record for a blob the client uploaded with a signed URL.

        The server never sees these bytes, so the thumbnail is always the placeholder.
        ``file_type`` is the type the upload URL was issued for; without it the
        type is guessed from the key's extension.

        Raises:
            ValidationError: Bad title, key or type, or no blob under the key.
            ConflictError: Another record already references the key.
        """
        if not file_key or not title:
            raise ValidationError("fileKey and title are required")
        title = self._validate_title(title)

        if not file_key.startswith("videos/") or ".." in PurePosixPath(file_key).parts:
            raise ValidationError("fileKey must reference an uploaded video")
        if not await self._storage_call("check upload", self.storage.exists(file_key)):
            raise ValidationError(f"No uploaded file found for key: {file_key}")
        if await self.store.find_by_file_key(file_key) is not None:
            raise ConflictError(f"Upload already completed for key: {file_key}")

        if file_type:
            mime_type = self._validate_mime_type(file_type)
        else:
            mime_type, _ = mimetypes.guess_type(file_key)
            if mime_type not in ALLOWED_VIDEO_TYPES:
                mime_type = "video/mp4"

        video_id = new_video_id()
        thumbnail_key, thumbnail_url, _ = await self._store_thumbnail(video_id, title, None)

        record = VideoRecord(
            id=video_id,
            title=title,
            description=(description or "").strip(),
            file_key=file_key,
            thumbnail_key=thumbnail_key,
            public_url=await self._storage_call("resolve video URL", self.storage.get_url(file_key)),
            thumbnail_url=thumbnail_url,
            channel=self.config.DEFAULT_CHANNEL,
            views=0,
            uploaded_at=utcnow(),
            file_size=max(int(file_size or 0), 0),
            mime_type=mime_type,
            thumbnail_generated=False,
        )

        try:
            committed = await self.store.append(record)
        except ConflictError:
            # A concurrent completion for the same key won the race
            if thumbnail_key:
                await self._discard(thumbnail_key)
            raise
        logger.info(f"Video saved: {committed.title} (ID: {committed.id})")
        return committed
