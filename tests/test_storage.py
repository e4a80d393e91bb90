"""Tests for the blob storage backends and factory."""

from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import NotFound

from app.core.exceptions import SignedUploadNotSupportedError
from app.models.video import StorageBackend
from app.services.storage import LocalStorageBackend, StorageConfig, get_storage_backend
from app.services.storage.base import StorageBackendInterface
from app.services.storage.gcs import GCSStorageBackend
from app.services.storage.s3 import S3StorageBackend


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorageBackend(str(tmp_path / "uploads"), url_prefix="media/")


class TestKeys:
    def test_video_key(self):
        assert StorageBackendInterface.generate_video_key("video_1_abc", ".mp4") == "videos/video_1_abc.mp4"

    def test_thumbnail_key(self):
        assert StorageBackendInterface.generate_thumbnail_key("video_1_abc") == "thumbnails/video_1_abc.jpg"

    def test_direct_upload_key_is_sanitized(self):
        key = StorageBackendInterface.generate_direct_upload_key("../my vid?.mp4", 1700000000000)

        assert key == "videos/1700000000000-.._my_vid_.mp4"
        assert "/" not in key.removeprefix("videos/")


class TestLocalStorage:
    @pytest.mark.asyncio
    async def test_put_and_read_back(self, local_storage, tmp_path):
        stored = await local_storage.put("videos/a.mp4", b"data", "video/mp4")

        assert stored.size_bytes == 4
        assert stored.url == "/media/videos/a.mp4"
        assert (tmp_path / "uploads" / "videos" / "a.mp4").read_bytes() == b"data"
        assert await local_storage.exists("videos/a.mp4")

    @pytest.mark.asyncio
    async def test_public_base_url(self, tmp_path):
        backend = LocalStorageBackend(str(tmp_path), public_base_url="http://localhost:3000/")

        assert await backend.get_url("thumbnails/a.jpg") == "http://localhost:3000/media/thumbnails/a.jpg"

    @pytest.mark.asyncio
    async def test_delete(self, local_storage):
        await local_storage.put("videos/a.mp4", b"data", "video/mp4")

        assert await local_storage.delete("videos/a.mp4") is True
        assert await local_storage.delete("videos/a.mp4") is False
        assert not await local_storage.exists("videos/a.mp4")

    @pytest.mark.asyncio
    async def test_usage(self, local_storage):
        await local_storage.put("videos/a.mp4", b"12345", "video/mp4")
        await local_storage.put("thumbnails/a.jpg", b"123", "image/jpeg")

        usage = await local_storage.usage()

        assert usage.object_count == 2
        assert usage.total_bytes == 8

    @pytest.mark.asyncio
    async def test_rejects_escaping_keys(self, local_storage):
        with pytest.raises(ValueError):
            await local_storage.put("../outside.mp4", b"data", "video/mp4")

    @pytest.mark.asyncio
    async def test_signed_upload_not_supported(self, local_storage):
        assert local_storage.supports_signed_upload is False
        with pytest.raises(SignedUploadNotSupportedError):
            await local_storage.sign_upload("videos/a.mp4", "video/mp4", 900)


class TestGCSStorage:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def backend(self, client):
        return GCSStorageBackend("demo.firebasestorage.app", client=client)

    @pytest.mark.asyncio
    async def test_put_uploads_blob(self, backend, client):
        stored = await backend.put("videos/a.mp4", b"data", "video/mp4")

        blob = client.bucket.return_value.blob.return_value
        blob.upload_from_string.assert_called_once_with(b"data", content_type="video/mp4")
        assert stored.url == "https://storage.googleapis.com/demo.firebasestorage.app/videos/a.mp4"

    @pytest.mark.asyncio
    async def test_delete_missing_object(self, backend, client):
        client.bucket.return_value.blob.return_value.delete.side_effect = NotFound("gone")

        assert await backend.delete("videos/a.mp4") is False

    @pytest.mark.asyncio
    async def test_sign_upload(self, backend, client):
        blob = client.bucket.return_value.blob.return_value
        blob.generate_signed_url.return_value = "https://signed.example/put"

        url = await backend.sign_upload("videos/a.mp4", "video/mp4", 900)

        assert url == "https://signed.example/put"
        kwargs = blob.generate_signed_url.call_args.kwargs
        assert kwargs["method"] == "PUT"
        assert kwargs["version"] == "v4"
        assert kwargs["content_type"] == "video/mp4"

    @pytest.mark.asyncio
    async def test_usage(self, backend, client):
        client.list_blobs.return_value = [MagicMock(size=10), MagicMock(size=None)]

        usage = await backend.usage()

        assert usage.object_count == 2
        assert usage.total_bytes == 10


class TestS3Storage:
    @pytest.mark.asyncio
    async def test_default_public_url(self):
        backend = S3StorageBackend("clips", region_name="eu-west-1", prefix="prod")

        assert backend.bucket_name == "clips"
        assert await backend.get_url("videos/a.mp4") == "https://clips.s3.eu-west-1.amazonaws.com/prod/videos/a.mp4"

    @pytest.mark.asyncio
    async def test_endpoint_public_url(self):
        backend = S3StorageBackend("clips", endpoint_url="http://minio:9000/")

        assert await backend.get_url("videos/a.mp4") == "http://minio:9000/clips/videos/a.mp4"


class TestFactory:
    def test_local_from_settings(self, test_settings):
        config = StorageConfig.from_settings(test_settings)

        assert config.backend == StorageBackend.LOCAL
        assert isinstance(get_storage_backend(config), LocalStorageBackend)

    def test_unknown_backend(self, test_settings):
        test_settings.STORAGE_BACKEND = "ftp"

        with pytest.raises(ValueError):
            StorageConfig.from_settings(test_settings)

    def test_bucket_backends_require_bucket(self):
        with pytest.raises(ValueError):
            get_storage_backend(StorageConfig(backend=StorageBackend.S3))
        with pytest.raises(ValueError):
            get_storage_backend(StorageConfig(backend=StorageBackend.GCS))
