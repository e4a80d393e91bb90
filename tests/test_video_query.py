"""Tests for listing, viewing and deleting videos."""

import asyncio
from datetime import timedelta

import pytest

from app.core.exceptions import NotFoundError
from app.models.video import VideoRecord, utcnow


async def seed(store, storage, video_id: str, minutes_ago: int = 0, title: str = "Clip") -> VideoRecord:
    """Commit a record whose blobs exist in the in-memory storage."""
    record = VideoRecord(
        id=video_id,
        title=title,
        file_key=f"videos/{video_id}.mp4",
        thumbnail_key=f"thumbnails/{video_id}.jpg",
        public_url=f"https://blobs.test/videos/{video_id}.mp4",
        thumbnail_url=f"https://blobs.test/thumbnails/{video_id}.jpg",
        uploaded_at=utcnow() - timedelta(minutes=minutes_ago),
        file_size=1024,
    )
    storage.blobs[record.file_key] = (b"video", "video/mp4")
    storage.blobs[record.thumbnail_key] = (b"jpeg", "image/jpeg")
    return await store.append(record)


class TestListAll:
    @pytest.mark.asyncio
    async def test_empty_store(self, query_service):
        assert await query_service.list_all() == []

    @pytest.mark.asyncio
    async def test_newest_first(self, query_service, store, storage):
        await seed(store, storage, "old", minutes_ago=30)
        await seed(store, storage, "new", minutes_ago=1)
        await seed(store, storage, "mid", minutes_ago=10)

        videos = await query_service.list_all()

        assert [v.id for v in videos] == ["new", "mid", "old"]

    @pytest.mark.asyncio
    async def test_listing_does_not_count_views(self, query_service, store, storage):
        await seed(store, storage, "a")

        await query_service.list_all()
        await query_service.list_all()

        assert (await store.get("a")).views == 0


class TestGetById:
    @pytest.mark.asyncio
    async def test_each_fetch_counts_a_view(self, query_service, store, storage):
        await seed(store, storage, "a")

        for expected in range(1, 4):
            video = await query_service.get_by_id("a")
            assert video.views == expected

        assert (await store.get("a")).views == 3

    @pytest.mark.asyncio
    async def test_concurrent_fetches_count_every_view(self, query_service, store, storage):
        await seed(store, storage, "a")

        await asyncio.gather(*(query_service.get_by_id("a") for _ in range(20)))

        assert (await store.get("a")).views == 20

    @pytest.mark.asyncio
    async def test_views_are_persisted(self, query_service, store, storage, test_settings):
        from app.services.metadata_store import MetadataStore

        await seed(store, storage, "a")
        await query_service.get_by_id("a")

        reloaded = await MetadataStore(test_settings.VIDEOS_DB_FILE).load()
        assert reloaded[0].views == 1

    @pytest.mark.asyncio
    async def test_unknown_id_leaves_others_untouched(self, query_service, store, storage):
        await seed(store, storage, "a")

        with pytest.raises(NotFoundError):
            await query_service.get_by_id("missing")

        assert (await store.get("a")).views == 0


class TestDeleteById:
    @pytest.mark.asyncio
    async def test_removes_record_and_blobs(self, query_service, store, storage):
        await seed(store, storage, "a")
        await seed(store, storage, "b")

        deleted = await query_service.delete_by_id("a")

        assert deleted.id == "a"
        assert [v.id for v in await store.snapshot()] == ["b"]
        assert "videos/a.mp4" not in storage.blobs
        assert "thumbnails/a.jpg" not in storage.blobs
        assert "videos/b.mp4" in storage.blobs

    @pytest.mark.asyncio
    async def test_blob_failure_does_not_undo_removal(self, query_service, store, storage):
        await seed(store, storage, "a")
        storage.fail_delete = True

        await query_service.delete_by_id("a")

        assert await store.count() == 0
        assert storage.delete_calls == ["videos/a.mp4", "thumbnails/a.jpg"]

    @pytest.mark.asyncio
    async def test_missing_thumbnail_key_skipped(self, query_service, store, storage):
        record = await seed(store, storage, "a")
        await store.update("a", lambda r: setattr(r, "thumbnail_key", None))

        await query_service.delete_by_id(record.id)

        assert storage.delete_calls == ["videos/a.mp4"]

    @pytest.mark.asyncio
    async def test_unknown_id(self, query_service, storage):
        with pytest.raises(NotFoundError):
            await query_service.delete_by_id("missing")
        assert storage.delete_calls == []


class TestInfo:
    @pytest.mark.asyncio
    async def test_health_counts_videos(self, query_service, store, storage):
        await seed(store, storage, "a")
        await seed(store, storage, "b")

        health = await query_service.health()

        assert health == {
            "status": "OK",
            "message": "Video platform API is running",
            "videosCount": 2,
        }

    @pytest.mark.asyncio
    async def test_storage_info(self, query_service, store, storage):
        await seed(store, storage, "a")

        info = await query_service.storage_info()

        assert info["backend"] == "memory"
        assert info["bucket"] == "test-bucket"
        assert info["totalVideos"] == 1
        assert info["totalSize"] == 1024
        assert info["maxFileSizeMB"] == 1
        assert info["signedUploads"] is True
        assert info["storedObjects"] == 2
        assert "video/mp4" in info["allowedTypes"]

    @pytest.mark.asyncio
    async def test_storage_info_survives_usage_failure(self, query_service, storage):
        async def broken_usage():
            raise RuntimeError("listing denied")

        storage.usage = broken_usage

        info = await query_service.storage_info()

        assert info["storedObjects"] is None
        assert info["totalVideos"] == 0
