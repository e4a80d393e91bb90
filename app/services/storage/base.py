"""Base interface for storage backends."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.exceptions import SignedUploadNotSupportedError


@dataclass
class StoredFile:
    """Information about a stored blob."""

    key: str  # Storage key (relative path, S3 key or GCS object name)
    size_bytes: int
    content_type: str
    etag: str | None = None  # For cache validation
    url: str | None = None  # Public URL if available


@dataclass
class StorageUsage:
    """Aggregate usage of the objects under the video and thumbnail prefixes."""

    object_count: int
    total_bytes: int


class StorageBackendInterface(ABC):
    """Abstract base class for blob storage backends.

    Implementations should handle:
    - Storing video and thumbnail blobs under string keys
    - Resolving keys to URLs clients can play or display
    - Best-effort deletion
    - Optionally, pre-signed write URLs for direct uploads
    """

    name: str = "abstract"
    supports_signed_upload: bool = False

    @property
    def bucket_name(self) -> str | None:
        """Bucket the backend writes to, if it has one."""
        return None

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> StoredFile:
        """Store a blob.

        Args:
            key: Storage key
            data: Blob contents
            content_type: MIME type of the blob

        Returns:
            StoredFile with key, size and URL
        """
        pass

    @abstractmethod
    async def get_url(self, key: str) -> str:
        """Get a URL for accessing a stored blob.

        For local storage, returns a path under the media mount.
        For buckets, returns the public object URL.

        Args:
            key: Storage key

        Returns:
            URL for accessing the blob
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a blob.

        Args:
            key: Storage key

        Returns:
            True if a blob was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a blob exists.

        Args:
            key: Storage key

        Returns:
            True if the blob exists
        """
        pass

    @abstractmethod
    async def usage(self) -> StorageUsage:
        """Summarize stored objects for the storage info endpoint."""
        pass

    async def sign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        """Create a pre-signed URL the client can PUT the blob to.

        Args:
            key: Storage key the client will write
            content_type: MIME type the client must send
            expires_in: URL lifetime in seconds

        Returns:
            Signed write URL
        """
        raise SignedUploadNotSupportedError(
            f"The {self.name} storage backend does not support signed uploads"
        )

    @staticmethod
    def generate_video_key(video_id: str, extension: str) -> str:
        """Generate the key for a server-side uploaded video.

        Structure: videos/{video_id}{ext}
        """
        return f"videos/{video_id}{extension}"

    @staticmethod
    def generate_thumbnail_key(video_id: str, extension: str = "jpg") -> str:
        """Generate the key for a video thumbnail.

        Structure: thumbnails/{video_id}.{ext}
        """
        return f"thumbnails/{video_id}.{extension}"

    @staticmethod
    def generate_direct_upload_key(file_name: str, timestamp_ms: int) -> str:
        """Generate the key for a client-side (signed URL) upload.

        Structure: videos/{timestamp_ms}-{sanitized_name}
        """
        sanitized = re.sub(r"[^a-zA-Z0-9.]", "_", file_name)
        return f"videos/{timestamp_ms}-{sanitized}"
