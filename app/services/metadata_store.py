"""Flat-file metadata store for video records.

The whole collection lives in one JSON document, ``{"videos": [...]}``,
rewritten in full on every mutation. The store keeps an in-memory copy and
serializes every load-mutate-save sequence behind a single asyncio lock; the
copy is only replaced after the document was written successfully.
"""

import asyncio
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ConflictError, NotFoundError, PersistenceError
from app.models.video import VideoRecord

logger = logging.getLogger(__name__)


class MetadataStore:
    """Lock-guarded collection of VideoRecord persisted as one JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._records: list[VideoRecord] = []
        self._lock = asyncio.Lock()

    async def load(self) -> list[VideoRecord]:
        """Read the document and replace the in-memory copy.

        A missing or unreadable document is treated as an empty store.
        Individual invalid records are skipped so the valid ones survive the
        next rewrite.
        """
        records: list[VideoRecord] = []
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            data = json.loads(raw)
            # Accept both {"videos": [...]} and a bare list
            items = data.get("videos", []) if isinstance(data, dict) else data
            for index, item in enumerate(items):
                try:
                    records.append(VideoRecord.model_validate(item))
                except PydanticValidationError as e:
                    logger.error(f"Skipping invalid video record #{index} in {self.path}: {e}")
        except FileNotFoundError:
            logger.info(f"No existing database found at {self.path}, starting empty")
        except (OSError, json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.error(f"Could not read database {self.path}, starting empty: {e}")
            records = []

        self._records = records
        logger.info(f"Loaded {len(records)} videos from database")
        return [r.model_copy() for r in records]

    async def save(self, records: list[VideoRecord]) -> bool:
        """Rewrite the document with the given records.

        Returns:
            True if the document was written, False otherwise
        """
        document = {"videos": [r.to_document() for r in records]}
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(document, indent=2))
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving database {self.path}: {e}")
            if tmp_path.exists():
                await aiofiles.os.remove(tmp_path)
            return False

    async def _commit(self, records: list[VideoRecord]) -> None:
        # Caller holds the lock
        if not await self.save(records):
            raise PersistenceError("Failed to save video metadata")
        self._records = records

    async def snapshot(self) -> list[VideoRecord]:
        """Copies of all records in storage order."""
        async with self._lock:
            return [r.model_copy() for r in self._records]

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    async def get(self, video_id: str) -> VideoRecord | None:
        async with self._lock:
            for record in self._records:
                if record.id == video_id:
                    return record.model_copy()
        return None

    async def find_by_file_key(self, file_key: str) -> VideoRecord | None:
        async with self._lock:
            for record in self._records:
                if record.file_key == file_key:
                    return record.model_copy()
        return None

    async def append(self, record: VideoRecord) -> VideoRecord:
        """Add a new record and persist the document.

        Ids and video blob keys are unique across the store.
        """
        async with self._lock:
            if any(r.id == record.id for r in self._records):
                raise PersistenceError(f"Duplicate video id: {record.id}")
            if any(r.file_key == record.file_key for r in self._records):
                raise ConflictError(f"Upload already completed for key: {record.file_key}")
            await self._commit([*self._records, record.model_copy()])
        return record.model_copy()

    async def update(self, video_id: str, mutate: Callable[[VideoRecord], None]) -> VideoRecord:
        """Apply ``mutate`` to a copy of one record and persist the document."""
        async with self._lock:
            for index, record in enumerate(self._records):
                if record.id == video_id:
                    updated = record.model_copy()
                    mutate(updated)
                    records = list(self._records)
                    records[index] = updated
                    await self._commit(records)
                    return updated.model_copy()
        raise NotFoundError("Video not found")

    async def increment_views(self, video_id: str) -> VideoRecord:
        """Add one view to a record and persist the document."""

        def _bump(record: VideoRecord) -> None:
            record.views = (record.views or 0) + 1

        return await self.update(video_id, _bump)

    async def remove(self, video_id: str) -> VideoRecord:
        """Remove a record and persist the document."""
        async with self._lock:
            for index, record in enumerate(self._records):
                if record.id == video_id:
                    await self._commit(self._records[:index] + self._records[index + 1 :])
                    return record.model_copy()
        raise NotFoundError("Video not found")
