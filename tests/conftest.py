"""Shared fixtures: in-memory blob store, scripted extractor, wired services."""

import os
import tempfile

# Settings are read at import time; keep test runs out of the working directory
_TEST_ROOT = tempfile.mkdtemp(prefix="video-api-tests-")
os.environ.setdefault("DATA_DIR", os.path.join(_TEST_ROOT, "data"))
os.environ.setdefault("VIDEOS_DB_FILE", os.path.join(_TEST_ROOT, "data", "videos-db.json"))
os.environ.setdefault("TEMP_DIR", os.path.join(_TEST_ROOT, "temp"))
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("STORAGE_LOCAL_PATH", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.config import Settings  # noqa: E402
from app.core.exceptions import StorageError  # noqa: E402
from app.services.metadata_store import MetadataStore  # noqa: E402
from app.services.storage import StorageBackendInterface, StorageUsage, StoredFile  # noqa: E402
from app.services.thumbnails import FrameResult  # noqa: E402
from app.services.upload_service import UploadService  # noqa: E402
from app.services.video_query import VideoQueryService  # noqa: E402

FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9"
FAKE_MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


class InMemoryStorage(StorageBackendInterface):
    """Blob store keeping objects in a dict, with switchable failures."""

    name = "memory"

    def __init__(self, signed: bool = True):
        self.blobs: dict[str, tuple[bytes, str]] = {}
        self.supports_signed_upload = signed
        self.fail_put_prefixes: set[str] = set()
        self.fail_delete = False
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []

    @property
    def bucket_name(self) -> str:
        return "test-bucket"

    async def put(self, key: str, data: bytes, content_type: str) -> StoredFile:
        self.put_calls.append(key)
        if any(key.startswith(p) for p in self.fail_put_prefixes):
            raise StorageError(f"put failed for {key}")
        self.blobs[key] = (data, content_type)
        return StoredFile(
            key=key, size_bytes=len(data), content_type=content_type, url=await self.get_url(key)
        )

    async def get_url(self, key: str) -> str:
        return f"https://blobs.test/{key}"

    async def delete(self, key: str) -> bool:
        self.delete_calls.append(key)
        if self.fail_delete:
            raise RuntimeError("delete failed")
        return self.blobs.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self.blobs

    async def usage(self) -> StorageUsage:
        return StorageUsage(
            object_count=len(self.blobs),
            total_bytes=sum(len(data) for data, _ in self.blobs.values()),
        )

    async def sign_upload(self, key: str, content_type: str, expires_in: int) -> str:
        if not self.supports_signed_upload:
            return await super().sign_upload(key, content_type, expires_in)
        return f"https://blobs.test/{key}?signature=abc&expires={expires_in}"


class ScriptedExtractor:
    """Stands in for ThumbnailExtractor without running FFmpeg."""

    def __init__(self, image: bytes | None = FAKE_JPEG, duration: float | None = 75.0):
        self.image = image
        self.duration = duration
        self.calls = 0

    async def extract_frame(self, video_bytes: bytes, suffix: str = ".mp4", timestamp_ms: int = 1000):
        self.calls += 1
        if self.image is None:
            return FrameResult(error="ffmpeg exited with status 1")
        return FrameResult(image=self.image)

    async def probe_duration(self, video_bytes: bytes, suffix: str = ".mp4"):
        return self.duration

    async def inspect(self, video_bytes: bytes, suffix: str = ".mp4", timestamp_ms: int = 1000):
        return (
            await self.extract_frame(video_bytes, suffix, timestamp_ms),
            await self.probe_duration(video_bytes, suffix),
        )


class CrashingExtractor(ScriptedExtractor):
    """Extractor whose inspection raises instead of reporting a failure."""

    async def inspect(self, video_bytes: bytes, suffix: str = ".mp4", timestamp_ms: int = 1000):
        raise RuntimeError("extractor crashed")


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated to the test's temporary directory."""
    return Settings(
        DATA_DIR=str(tmp_path / "data"),
        VIDEOS_DB_FILE=str(tmp_path / "data" / "videos-db.json"),
        TEMP_DIR=str(tmp_path / "temp"),
        STORAGE_LOCAL_PATH=str(tmp_path / "uploads"),
        MAX_FILE_SIZE_MB=1,
        STORAGE_TIMEOUT_SECONDS=2.0,
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def store(test_settings):
    return MetadataStore(test_settings.VIDEOS_DB_FILE)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def upload_service(store, storage, extractor, test_settings):
    return UploadService(store, storage, extractor, test_settings)


@pytest.fixture
def query_service(store, storage, test_settings):
    return VideoQueryService(store, storage, test_settings)


@pytest.fixture
def client(upload_service, query_service):
    """Create a test client with services bound to the in-memory fixtures."""
    from app.routes.dependencies import get_query_service, get_upload_service
    from main import app

    app.dependency_overrides[get_upload_service] = lambda: upload_service
    app.dependency_overrides[get_query_service] = lambda: query_service
    yield TestClient(app)
    app.dependency_overrides.clear()
