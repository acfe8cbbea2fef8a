"""Service container for dependency injection."""
from typing import Optional

from faceid.core.config import Settings, settings
from faceid.core.logging import get_logger
from faceid.domain.interfaces.recognition.face_detector import FaceDetector
from faceid.domain.interfaces.storage.embedding_store import EmbeddingStore
from faceid.infrastructure.storage import InMemoryEmbeddingStore, SqlEmbeddingStore
from faceid.services.enrollment import EnrollmentWorkflow
from faceid.services.matching.gallery_service import GalleryService
from faceid.services.recognition_session import RecognitionSession

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    It ensures proper initialization order and provides a single source of truth for service instances.

    Collaborators (detector, store) can be injected, which is how tests and
    tools swap in their own implementations.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        # Get services from container
        session = container.recognition_session
        workflow = container.enrollment_workflow
        ```
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        detector: Optional[FaceDetector] = None,
        store: Optional[EmbeddingStore] = None,
    ) -> None:
        """Initialize empty container."""
        self.config = config or settings

        # Collaborators - Use interface type hints
        self.detector: Optional[FaceDetector] = detector
        self.store: Optional[EmbeddingStore] = store

        # Core services (depend on interfaces)
        self.gallery_service: Optional[GalleryService] = None
        self.recognition_session: Optional[RecognitionSession] = None
        self.enrollment_workflow: Optional[EnrollmentWorkflow] = None

    @property
    def initialized(self) -> bool:
        return (
            self.enrollment_workflow is not None
            and self.gallery_service is not None
            and self.gallery_service.is_loaded
        )

    def _create_store(self) -> EmbeddingStore:
        backend = self.config.STORE_BACKEND.lower()
        if backend == "memory":
            return InMemoryEmbeddingStore(dimension=self.config.EMBEDDING_DIMENSION)
        if backend == "sql":
            return SqlEmbeddingStore.from_url(
                self.config.DATABASE_URL,
                dimension=self.config.EMBEDDING_DIMENSION,
            )
        raise ValueError(f"Unknown STORE_BACKEND: {self.config.STORE_BACKEND}")

    def _create_detector(self) -> FaceDetector:
        # insightface is only imported when the default detector is built
        from faceid.services.recognition.insight_face import InsightFaceDetector

        return InsightFaceDetector()

    async def initialize(self) -> None:
        """Initialize all services in the correct order.

        Raises:
            StoreUnavailableError: If the embedding store cannot be loaded
            ModelLoadError: If the face model cannot be loaded
        """
        if self.store is None:
            self.store = self._create_store()
        if isinstance(self.store, SqlEmbeddingStore):
            await self.store.initialize()

        self.gallery_service = GalleryService(
            store=self.store,
            dimension=self.config.EMBEDDING_DIMENSION,
            threshold=self.config.MATCH_THRESHOLD,
            unknown_label=self.config.UNKNOWN_LABEL,
        )
        await self.gallery_service.load()

        if self.detector is None:
            self.detector = self._create_detector()
        if self.detector.embedding_dimension != self.config.EMBEDDING_DIMENSION:
            logger.warning(
                "Detector embedding dimension differs from configuration",
                detector_dimension=self.detector.embedding_dimension,
                configured_dimension=self.config.EMBEDDING_DIMENSION,
            )

        self.recognition_session = RecognitionSession(
            detector=self.detector,
            gallery_service=self.gallery_service,
        )
        self.enrollment_workflow = EnrollmentWorkflow(
            session=self.recognition_session,
            store=self.store,
            gallery_service=self.gallery_service,
            reject_name_conflicts=self.config.ENROLLMENT_REJECT_NAME_CONFLICT,
        )

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        self.enrollment_workflow = None
        self.recognition_session = None
        self.gallery_service = None

        if isinstance(self.store, SqlEmbeddingStore):
            await self.store.close()
        self.store = None
        self.detector = None


# Global container instance
container = ServiceContainer()
