"""Health check endpoint for chunkpilot."""

from fastapi import APIRouter

from chunkpilot.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        dict: Health status response with status, service, version and backend fields
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "upload_backend": settings.UPLOAD_BACKEND,
    }
