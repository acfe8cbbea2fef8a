"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from faceid.core.container import ServiceContainer, container
from faceid.core.exceptions import ServiceNotInitializedError
from faceid.services.enrollment import EnrollmentWorkflow
from faceid.services.matching.gallery_service import GalleryService
from faceid.services.recognition_session import RecognitionSession


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance.

    The container is initialized by the application lifespan; a request that
    arrives before that (or after a failed startup) is refused.
    """
    if not container.initialized:
        raise ServiceNotInitializedError("Service container is not initialized")
    return container


async def get_gallery_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[GalleryService, None]:
    """Provide the gallery service.

    Yields:
        GalleryService: Owner of the current gallery snapshot

    Raises:
        ServiceNotInitializedError: If service is not initialized
    """
    if container.gallery_service is None:
        raise ServiceNotInitializedError("Gallery service not initialized")
    yield container.gallery_service


async def get_recognition_session(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[RecognitionSession, None]:
    """Provide the recognition session.

    Yields:
        RecognitionSession: Initialized recognition session

    Raises:
        ServiceNotInitializedError: If service is not initialized
    """
    if container.recognition_session is None:
        raise ServiceNotInitializedError("Recognition session not initialized")
    yield container.recognition_session


async def get_enrollment_workflow(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[EnrollmentWorkflow, None]:
    """Dependency provider for EnrollmentWorkflow."""
    if container.enrollment_workflow is None:
        raise ServiceNotInitializedError("Enrollment workflow not initialized")
    yield container.enrollment_workflow
