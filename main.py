"""
Video Hosting API Service
Upload, browse, view and delete videos backed by a pluggable blob store
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from app.core.config import ensure_directories, settings
from app.core.exceptions import VideoServiceError
from app.core.rate_limit import limiter
from app.routes.dependencies import get_metadata_store
from app.routes.health import router as health_router
from app.routes.videos import router as videos_router
from app.services.storage import LocalStorageBackend, get_default_storage

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Logger for this module
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the metadata document before serving requests."""
    ensure_directories(settings)
    await get_metadata_store().load()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter


# Custom rate limit exceeded handler
@app.exception_handler(RateLimitExceeded)
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Custom handler for rate limit exceeded responses"""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": "Too many uploads. Please try again later.",
            "retry_after": getattr(exc, "detail", "60 seconds"),
        },
    )


@app.exception_handler(VideoServiceError)
async def video_service_error_handler(request: Request, exc: VideoServiceError):
    """Map service errors to their status code with an ``{"error": ...}`` body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same error shape as service validation errors."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "details": jsonable_encoder(errors)})


# Include video routers
app.include_router(videos_router, prefix=settings.API_PREFIX)
app.include_router(health_router, prefix=settings.API_PREFIX)

# Serve locally stored blobs; bucket backends hand out their own URLs
_storage = get_default_storage()
if isinstance(_storage, LocalStorageBackend):
    app.mount(
        _storage.url_prefix,
        StaticFiles(directory=str(_storage.base_path)),
        name="media",
    )

# CORS for frontend - origins configured via CORS_ORIGINS environment variable
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
