"""Error taxonomy for the video service.

Each error carries the HTTP status the API layer answers with. Handlers in
``main.py`` turn any ``VideoServiceError`` into an ``{"error": message}`` body.
"""


class VideoServiceError(Exception):
    """Base class for errors raised by the video services."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(VideoServiceError):
    """The request is malformed: missing title or file, bad mime type, too large."""

    status_code = 400


class NotFoundError(VideoServiceError):
    """No video record exists for the given id."""

    status_code = 404


class StorageError(VideoServiceError):
    """A blob store put/get/delete/sign call failed or timed out."""

    status_code = 502


class SignedUploadNotSupportedError(StorageError):
    """The configured blob store cannot issue signed upload URLs."""

    status_code = 501


class ProcessingError(VideoServiceError):
    """Thumbnail extraction failed. Recovered locally, never sent to clients."""

    status_code = 500


class PersistenceError(VideoServiceError):
    """The metadata document could not be written."""

    status_code = 500


class ConflictError(VideoServiceError):
    """The request would create a second record for an already registered blob."""

    status_code = 409
