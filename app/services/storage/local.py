"""Local filesystem storage backend."""

from pathlib import Path

import aiofiles
import aiofiles.os

from app.services.storage.base import StorageBackendInterface, StorageUsage, StoredFile


class LocalStorageBackend(StorageBackendInterface):
    """Storage backend using local filesystem.

    Suitable for:
    - Local development
    - Single-server deployments

    Blobs are served by the API itself from the media mount.
    """

    name = "local"

    def __init__(self, base_path: str, url_prefix: str = "/media", public_base_url: str = ""):
        """Initialize local storage backend.

        Args:
            base_path: Base directory for storing files
            url_prefix: Path the base directory is mounted at
            public_base_url: Optional scheme and host prepended to URLs
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.public_base_url = public_base_url.rstrip("/")

    def _full_path(self, key: str) -> Path:
        """Get full path from storage key, refusing keys that escape the base path."""
        full_path = (self.base_path / key).resolve()
        if not full_path.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Invalid storage key: {key}")
        return full_path

    async def put(self, key: str, data: bytes, content_type: str) -> StoredFile:
        """Store a blob on local filesystem."""
        full_path = self._full_path(key)

        # Create directory structure
        full_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(full_path, "wb") as f:
            await f.write(data)

        size_bytes = await aiofiles.os.path.getsize(full_path)

        return StoredFile(
            key=key,
            size_bytes=size_bytes,
            content_type=content_type,
            url=await self.get_url(key),
        )

    async def get_url(self, key: str) -> str:
        """Get the media URL for a stored blob."""
        return f"{self.public_base_url}{self.url_prefix}/{key}"

    async def delete(self, key: str) -> bool:
        """Delete a blob from local filesystem."""
        full_path = self._full_path(key)
        if not full_path.exists():
            return False
        await aiofiles.os.remove(full_path)
        return True

    async def exists(self, key: str) -> bool:
        """Check if a blob exists."""
        return self._full_path(key).is_file()

    async def usage(self) -> StorageUsage:
        """Count files and bytes under the base path."""
        count = 0
        total_size = 0
        for file_path in self.base_path.rglob("*"):
            if file_path.is_file():
                count += 1
                total_size += file_path.stat().st_size
        return StorageUsage(object_count=count, total_bytes=total_size)
