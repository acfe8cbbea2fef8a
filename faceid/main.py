"""Main application module for the face identity service."""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from faceid.api import router as api_v1_router
from faceid.api.models.face import GalleryStatsResponse, HealthResponse
from faceid.core.config import settings
from faceid.core.container import ServiceContainer, container
from faceid.core.exceptions import ServiceNotInitializedError
from faceid.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
    """Handle application startup and shutdown events.

    A store that cannot be loaded at startup aborts the startup: the
    service never answers requests without its gallery.

    Args:
        app: FastAPI application instance

    Returns:
        AsyncGenerator[Any, None]: Async context manager for app lifecycle
    """
    logger.info(
        "Starting up face identity service",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
    )

    await container.initialize()
    logger.info("Initialized application services")

    yield

    logger.info("Shutting down face identity service")
    await container.cleanup()
    logger.info("Cleaned up application resources")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.exception_handler(ServiceNotInitializedError)
async def service_not_initialized_handler(request: Request, exc: ServiceNotInitializedError) -> JSONResponse:
    """Refuse requests while the services are not ready."""
    logger.error("Service not initialized", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Service is not ready"})


def get_app_container() -> ServiceContainer:
    """Dependency provider for the container, initialized or not."""
    return container


@app.get("/health", response_model=HealthResponse)
async def health_check(
    service_container: ServiceContainer = Depends(get_app_container),
) -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        HealthResponse: Health status and gallery size
    """
    logger.debug("Health check requested")
    if not service_container.initialized:
        return HealthResponse(status="starting")

    stats = service_container.gallery_service.stats()
    return HealthResponse(
        status="healthy",
        gallery=GalleryStatsResponse(identities=stats.identities, embeddings=stats.embeddings),
    )


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run("faceid.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
