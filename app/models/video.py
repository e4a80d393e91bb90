"""Pydantic models for video metadata.

The metadata document stores one ``VideoRecord`` per uploaded video. Field
names are snake_case in Python and camelCase in the JSON document and in API
responses, so documents written by earlier deployments load unchanged.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class StorageBackend(str, Enum):
    """Storage backend types for video files."""

    LOCAL = "local"
    S3 = "s3"
    GCS = "gcs"


# Accepted upload types and the extension used for their storage key
ALLOWED_VIDEO_TYPES: dict[str, str] = {
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/avi": ".avi",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoRecord(BaseModel):
    """Metadata for one uploaded video and its thumbnail."""

    id: str
    title: str
    description: str = ""
    file_key: str = Field(..., alias="fileKey")
    thumbnail_key: str | None = Field(None, alias="thumbnailKey")
    public_url: str = Field(..., alias="publicUrl")
    thumbnail_url: str = Field("", alias="thumbnailUrl")
    channel: str = "Your Channel"
    type: str = "video"
    views: int = Field(0, ge=0)
    duration: str = "00:00"
    uploaded_at: datetime = Field(default_factory=utcnow, alias="uploadedAt")
    file_size: int = Field(0, ge=0, alias="fileSize")
    mime_type: str = Field("video/mp4", alias="mimeType")
    thumbnail_generated: bool = Field(False, alias="thumbnailGenerated")

    model_config = {"populate_by_name": True}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("views", mode="before")
    @classmethod
    def default_views(cls, v):
        # Older documents may carry null views
        return 0 if v is None else v

    @field_validator("uploaded_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self) -> dict:
        """Serialize for the metadata document (camelCase, JSON types)."""
        return self.model_dump(mode="json", by_alias=True)


class UploadTicket(BaseModel):
    """Signed write URL handed to a client for a direct-to-bucket upload."""

    upload_url: str = Field(..., alias="uploadUrl")
    file_key: str = Field(..., alias="fileKey")
    bucket: str
    expires_in: str = Field(..., alias="expiresIn")

    model_config = {"populate_by_name": True}
