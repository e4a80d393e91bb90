"""Rate limiter shared by the upload endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# In-process counters; the service runs as a single process
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
