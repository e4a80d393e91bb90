"""Pydantic models for the application."""

from app.models.video import (ALLOWED_VIDEO_TYPES, StorageBackend,
                              UploadTicket, VideoRecord)

__all__ = [
    "VideoRecord",
    "UploadTicket",
    "StorageBackend",
    "ALLOWED_VIDEO_TYPES",
]
