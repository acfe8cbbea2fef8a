"""Owner of the current gallery snapshot."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

import numpy as np

from faceid.core.exceptions import CorruptEmbeddingError, StoreUnavailableError
from faceid.core.logging import get_logger
from faceid.domain.interfaces.matching.face_matcher import FaceMatcher
from faceid.domain.interfaces.storage.embedding_store import EmbeddingStore
from faceid.domain.value_objects.recognition import GalleryStats
from faceid.services.matching.gallery import Gallery

logger = get_logger(__name__)

MatcherFactory = Callable[[Dict[str, List[np.ndarray]]], FaceMatcher]


class GalleryService:
    """Holds the gallery snapshot shared by every request.

    Readers take ``snapshot`` once and match against it without locking.
    Writers enter ``mutation()``, which serialises them, and finish with
    ``publish()``, which swaps the snapshot reference in one assignment.

    Example:
        ```python
        service = GalleryService(store, dimension=512, threshold=0.6)
        await service.load()

        async with service.mutation():
            gallery = service.snapshot
            ...
            service.publish(gallery.with_embedding("alice", vector))
        ```
    """

    def __init__(
        self,
        store: EmbeddingStore,
        dimension: int,
        threshold: float,
        unknown_label: str = "unknown",
        matcher_factory: Optional[MatcherFactory] = None,
    ) -> None:
        """Initialize the gallery service.

        Args:
            store: Embedding store the gallery is loaded from
            dimension: Embedding length
            threshold: Maximum match distance (inclusive)
            unknown_label: Label for unmatched faces
            matcher_factory: Builds a matcher from label -> embeddings; defaults to an exact Gallery
        """
        self.store = store
        self.dimension = dimension
        self.threshold = threshold
        self.unknown_label = unknown_label
        self._matcher_factory = matcher_factory or self._build_gallery
        self._snapshot: Optional[FaceMatcher] = None
        self._write_lock = asyncio.Lock()

    def _build_gallery(self, identities: Dict[str, List[np.ndarray]]) -> FaceMatcher:
        return Gallery.from_identities(
            identities,
            dimension=self.dimension,
            threshold=self.threshold,
            unknown_label=self.unknown_label,
        )

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> FaceMatcher:
        """Current gallery snapshot.

        Raises:
            StoreUnavailableError: If the gallery was never loaded
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise StoreUnavailableError("Labeled face embeddings not loaded")
        return snapshot

    async def load(self) -> FaceMatcher:
        """(Re)build the snapshot from the embedding store.

        Returns:
            The published snapshot

        Raises:
            StoreUnavailableError: If the store cannot be reached
            CorruptEmbeddingError: If a stored embedding is malformed
        """
        async with self._write_lock:
            try:
                identities = await self.store.load_all()
            except (StoreUnavailableError, CorruptEmbeddingError) as e:
                logger.error("Failed to load labeled face embeddings", error=str(e))
                raise

            gallery = self._matcher_factory(identities)
            self.publish(gallery)
            for label, embeddings in identities.items():
                logger.debug("Identity loaded", label=label, embeddings=len(embeddings))
            logger.info(
                "Gallery loaded",
                identities=len(gallery.labels),
                embeddings=gallery.size,
            )
            return gallery

    @asynccontextmanager
    async def mutation(self) -> AsyncIterator[None]:
        """Critical section for resolve-then-write sequences."""
        async with self._write_lock:
            yield

    def publish(self, gallery: FaceMatcher) -> None:
        """Make ``gallery`` the snapshot seen by subsequent requests."""
        self._snapshot = gallery

    def stats(self) -> GalleryStats:
        snapshot = self.snapshot
        return GalleryStats(
            identities=len(snapshot.labels),
            embeddings=snapshot.size,
        )
