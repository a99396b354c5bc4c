"""Main application entrypoint for chunkpilot."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from chunkpilot.api.v1 import routes_health
from chunkpilot.api.v1.routes_upload import get_upload_controller, router as upload_router
from chunkpilot.core.config import settings
from chunkpilot.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Only close a backend that was actually built
    if get_upload_controller.cache_info().currsize:
        await get_upload_controller().backend.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    return app


# Export app instance for ASGI servers
app = create_app()
