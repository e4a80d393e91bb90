"""Google Cloud Storage backend.

Also serves Firebase Storage, whose buckets are plain GCS buckets
(``<project>.firebasestorage.app``).
"""

import asyncio
from datetime import timedelta

from google.api_core.exceptions import NotFound
from google.cloud import storage

from app.services.storage.base import StorageBackendInterface, StorageUsage, StoredFile


class GCSStorageBackend(StorageBackendInterface):
    """Storage backend using a Google Cloud Storage bucket.

    The google-cloud-storage client is synchronous, so every call runs in a
    worker thread.
    """

    name = "gcs"
    supports_signed_upload = True

    def __init__(
        self,
        bucket_name: str,
        project: str | None = None,
        credentials_file: str | None = None,
        public_url: str | None = None,
        client: storage.Client | None = None,
    ):
        """Initialize GCS storage backend.

        Args:
            bucket_name: GCS bucket name
            project: Google Cloud project id (defaults to the credentials' project)
            credentials_file: Service account JSON key; application default credentials otherwise
            public_url: Base URL objects are publicly served from
            client: Pre-built client, mainly for tests
        """
        if client is None:
            if credentials_file:
                client = storage.Client.from_service_account_json(credentials_file, project=project)
            else:
                client = storage.Client(project=project)
        self._client = client
        self._bucket = client.bucket(bucket_name)
        self._bucket_name = bucket_name
        self.public_url = (public_url or f"https://storage.googleapis.com/{bucket_name}").rstrip("/")

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    async def put(self, key: str, data: bytes, content_type: str) -> StoredFile:
        """Store a blob in the bucket."""
        blob = self._bucket.blob(key)
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)

        return StoredFile(
            key=key,
            size_bytes=len(data),
            content_type=content_type,
            etag=blob.etag,
            url=await self.get_url(key),
        )

    async def get_url(self, key: str) -> str:
        """Get the public URL of an object."""
        return f"{self.public_url}/{key}"

    async def delete(self, key: str) -> bool:
        """Delete an object from the bucket."""
        try:
            await asyncio.to_thread(self._bucket.blob(key).delete)
        except NotFound:
            return False
        return True

    async def exists(self, key: str) -> bool:
        """Check if an object exists in the bucket."""
        return await asyncio.to_thread(self._bucket.blob(key).exists)

    async def usage(self) -> StorageUsage:
        """Sum object sizes in the bucket."""

        def _collect() -> StorageUsage:
            count = 0
            total_size = 0
            for blob in self._client.list_blobs(self._bucket_name):
                count += 1
                total_size += blob.size or 0
            return StorageUsage(object_count=count, total_bytes=total_size)

        return await asyncio.to_thread(_collect)

    async def sign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        """Get a v4 signed PUT URL for a direct upload."""
        blob = self._bucket.blob(key)
        url: str = await asyncio.to_thread(
            blob.generate_signed_url,
            version="v4",
            expiration=timedelta(seconds=expires_in),
            method="PUT",
            content_type=content_type,
        )
        return url
