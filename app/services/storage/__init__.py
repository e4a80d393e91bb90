"""Storage abstraction layer for video and thumbnail blobs.

This module provides a unified interface for storing, resolving and
deleting blobs, supporting the local filesystem, AWS S3 and Google Cloud
Storage backends. The cloud backends are imported on demand by the factory.
"""

from app.services.storage.base import StorageBackendInterface, StorageUsage, StoredFile
from app.services.storage.factory import StorageConfig, get_default_storage, get_storage_backend
from app.services.storage.local import LocalStorageBackend

__all__ = [
    "StorageBackendInterface",
    "StoredFile",
    "StorageUsage",
    "LocalStorageBackend",
    "get_storage_backend",
    "get_default_storage",
    "StorageConfig",
]
