"""API endpoints for uploading, listing, viewing and deleting videos.

These endpoints support:
- Server-side multipart uploads
- Direct-to-bucket uploads through signed URLs (two-phase)
- Listing and fetching videos (fetching counts a view)
- Deleting a video together with its blobs

Service errors propagate to the handlers registered in ``main.py``.
"""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.rate_limit import limiter
from app.models.video import UploadTicket, VideoRecord
from app.routes.dependencies import get_query_service, get_upload_service
from app.services.upload_service import UploadService
from app.services.video_query import VideoQueryService

router = APIRouter(tags=["videos"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


# =============================================================================
# Request/Response Models
# =============================================================================


class GenerateUploadUrlRequest(BaseModel):
    """Request for a signed direct-upload URL."""

    file_name: str | None = Field(None, alias="fileName")
    file_type: str | None = Field(None, alias="fileType")

    model_config = {"populate_by_name": True}


class UploadCompleteRequest(BaseModel):
    """Request to commit metadata for a direct upload."""

    file_key: str | None = Field(None, alias="fileKey")
    title: str | None = None
    description: str | None = ""
    file_size: int | None = Field(0, alias="fileSize")
    file_type: str | None = Field(None, alias="fileType")

    model_config = {"populate_by_name": True}


class UploadResponse(BaseModel):
    success: bool = True
    video: VideoRecord


class UploadCompleteResponse(BaseModel):
    success: bool = True
    video_data: VideoRecord = Field(..., alias="videoData")

    model_config = {"populate_by_name": True}


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Video deleted successfully"


# =============================================================================
# Upload Endpoints
# =============================================================================


async def _read_within_limit(video: UploadFile, service: UploadService) -> bytes:
    """Read the upload in chunks, stopping as soon as it exceeds the size limit."""
    if video.size is not None:
        service.check_size_limit(video.size)

    chunks = []
    total = 0
    while True:
        chunk = await video.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        service.check_size_limit(total)
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=UploadResponse)
@limiter.limit(settings.UPLOAD_RATE_LIMIT)
async def upload_video(
    request: Request,
    video: UploadFile | None = File(None),
    title: str = Form(""),
    description: str = Form(""),
    service: UploadService = Depends(get_upload_service),
):
    """Upload a video through the server."""
    if video is None:
        raise ValidationError("No video file uploaded")

    try:
        data = await _read_within_limit(video, service)
    finally:
        await video.close()

    record = await service.submit_upload(
        file_bytes=data,
        mime_type=video.content_type,
        title=title,
        description=description,
        filename=video.filename,
    )
    return UploadResponse(video=record)


@router.post("/generate-upload-url", response_model=UploadTicket)
@limiter.limit(settings.UPLOAD_RATE_LIMIT)
async def generate_upload_url(
    request: Request,
    body: GenerateUploadUrlRequest,
    service: UploadService = Depends(get_upload_service),
):
    """Issue a signed URL the client uploads the video to directly."""
    return await service.begin_upload(body.file_name, body.file_type)


@router.post("/upload-complete", response_model=UploadCompleteResponse)
async def upload_complete(
    body: UploadCompleteRequest,
    service: UploadService = Depends(get_upload_service),
):
    """Commit metadata after a direct upload finished."""
    record = await service.complete_upload(
        file_key=body.file_key,
        title=body.title,
        description=body.description,
        file_size=body.file_size,
        file_type=body.file_type,
    )
    return UploadCompleteResponse(video_data=record)


# =============================================================================
# Query Endpoints
# =============================================================================


@router.get("/videos", response_model=list[VideoRecord])
async def list_videos(service: VideoQueryService = Depends(get_query_service)):
    """All videos, newest first."""
    return await service.list_all()


@router.get("/my-videos", response_model=list[VideoRecord])
async def list_my_videos(service: VideoQueryService = Depends(get_query_service)):
    """Videos of the current user.

    The service is single-tenant, so this is every video.
    """
    return await service.list_all()


@router.get("/videos/{video_id}", response_model=VideoRecord)
async def get_video(video_id: str, service: VideoQueryService = Depends(get_query_service)):
    """Get a video and increment its view count."""
    return await service.get_by_id(video_id)


@router.delete("/videos/{video_id}", response_model=DeleteResponse)
async def delete_video(video_id: str, service: VideoQueryService = Depends(get_query_service)):
    """Delete a video and its stored files."""
    await service.delete_by_id(video_id)
    return DeleteResponse()
