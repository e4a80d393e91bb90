"""Health check and storage usage endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.routes.dependencies import get_query_service
from app.services.video_query import VideoQueryService


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str
    videos_count: int = Field(..., alias="videosCount")

    model_config = {"populate_by_name": True}


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: VideoQueryService = Depends(get_query_service)):
    """Health check endpoint.

    Returns:
        HealthResponse with status and the number of stored videos
    """
    return await service.health()


@router.get("/storage-info")
async def storage_info(service: VideoQueryService = Depends(get_query_service)):
    """Usage and limits of the configured storage backend."""
    return await service.storage_info()
