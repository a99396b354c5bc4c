"""Upload backend factory."""

from chunkpilot.backends.base import UploadBackend
from chunkpilot.backends.http import HttpUploadBackend
from chunkpilot.backends.memory import InMemoryUploadBackend
from chunkpilot.core.config import settings


def get_upload_backend() -> UploadBackend:
    """Build the upload backend selected by ``UPLOAD_BACKEND``.

    Raises:
        ValueError: If the configured backend is unknown
    """
    backend_name = settings.UPLOAD_BACKEND.lower()

    if backend_name == "http":
        return HttpUploadBackend(
            base_url=settings.BACKEND_BASE_URL,
            download_base_url=settings.download_base_url,
            timeout=settings.REQUEST_TIMEOUT,
            chunk_timeout=settings.CHUNK_REQUEST_TIMEOUT,
            max_attempts=settings.TRANSPORT_MAX_ATTEMPTS,
            retry_min_seconds=settings.TRANSPORT_RETRY_MIN_SECONDS,
            retry_max_seconds=settings.TRANSPORT_RETRY_MAX_SECONDS,
        )
    if backend_name == "memory":
        return InMemoryUploadBackend(chunk_size=settings.chunk_size_bytes)

    raise ValueError(f"Unknown upload backend: {settings.UPLOAD_BACKEND}")
