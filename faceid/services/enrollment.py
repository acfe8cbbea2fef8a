"""Enrollment of face embeddings under identity labels."""
from typing import Dict, Iterable, List, Tuple

import numpy as np

from faceid.core.exceptions import (
    CorruptEmbeddingError,
    DetectorFailureError,
    IdentityExistsError,
    IdentityNotFoundError,
    InvalidFrameError,
    StoreUnavailableError,
)
from faceid.core.logging import get_logger
from faceid.domain.entities.face import to_embedding
from faceid.domain.interfaces.storage.embedding_store import EmbeddingStore
from faceid.domain.value_objects.recognition import (
    EnrollmentOutcome,
    Frame,
    IdentityCreated,
    IdentityExtended,
    LabelImportResult,
    MultipleFacesDetected,
    NameConflict,
    NameTaken,
    NoFaceDetected,
)
from faceid.services.matching.gallery_service import GalleryService
from faceid.services.recognition_session import RecognitionSession

logger = get_logger(__name__)


class EnrollmentWorkflow:
    """Registers face embeddings, creating or extending identities.

    The face is the primary key: a face that already matches an enrolled
    identity extends that identity whatever name the caller supplies. The
    caller's name is only used when the face is new.

    Example:
        ```python
        workflow = EnrollmentWorkflow(session, store, gallery_service)

        outcome = await workflow.enroll(Frame.from_data_url(frame_data), "bob")
        # IdentityCreated(label="bob")
        outcome = await workflow.enroll(Frame.from_data_url(other_frame), "robert")
        # IdentityExtended(label="bob")
        ```
    """

    def __init__(
        self,
        session: RecognitionSession,
        store: EmbeddingStore,
        gallery_service: GalleryService,
        reject_name_conflicts: bool = False,
    ) -> None:
        """Initialize the enrollment workflow.

        Args:
            session: Recognition session whose detection step is reused
            store: Embedding store receiving the writes
            gallery_service: Owner of the gallery snapshot and writer lock
            reject_name_conflicts: Report NameConflict instead of extending an
                identity enrolled under a different name
        """
        self._session = session
        self._store = store
        self._gallery_service = gallery_service
        self._reject_name_conflicts = reject_name_conflicts

    @property
    def dimension(self) -> int:
        return self._gallery_service.dimension

    async def enroll(self, frame: Frame, claimed_name: str) -> EnrollmentOutcome:
        """Enroll the single face in a frame.

        Args:
            frame: Decoded frame, expected to contain exactly one face
            claimed_name: Name to enroll a new face under

        Returns:
            IdentityCreated, IdentityExtended, NoFaceDetected, MultipleFacesDetected,
            NameTaken when a new face claims an enrolled label (NameConflict
            when name conflicts are rejected)

        Raises:
            ValueError: If the claimed name is blank
            InvalidFrameError: If the frame cannot be processed
            DetectorFailureError: If the detector fails
            StoreUnavailableError: If the gallery or the store is unavailable
        """
        name = (claimed_name or "").strip()
        if not name:
            raise ValueError("Claimed name must not be empty")

        if not self._gallery_service.is_loaded:
            raise StoreUnavailableError("Labeled face embeddings not loaded")

        observations = await self._session.detect(frame)
        if not observations:
            logger.info("No face in enrollment frame", claimed_name=name)
            return NoFaceDetected()
        if len(observations) > 1:
            logger.info(
                "Multiple faces in enrollment frame",
                claimed_name=name,
                faces_count=len(observations),
            )
            return MultipleFacesDetected(faces_count=len(observations))

        embedding = self._validated(observations[0].embedding)

        async with self._gallery_service.mutation():
            gallery = self._gallery_service.snapshot
            match = gallery.find_best_match(embedding)

            if match.matched:
                label = match.label
                if label != name:
                    if self._reject_name_conflicts:
                        logger.warning(
                            "Face already enrolled under another name",
                            label=label,
                            claimed_name=name,
                            distance=match.distance,
                        )
                        return NameConflict(label=label, claimed_name=name)
                    logger.info(
                        "Claimed name discarded for returning identity",
                        label=label,
                        claimed_name=name,
                    )

                await self._write(self._store.append, label, embedding)
                self._gallery_service.publish(gallery.with_embedding(label, embedding))
                logger.info(
                    "Face embeddings extended for existing identity",
                    label=label,
                    distance=match.distance,
                )
                return IdentityExtended(label=label)

            if name in gallery.labels:
                logger.warning(
                    "Claimed name already enrolled for another face",
                    label=name,
                    distance=match.distance,
                )
                return NameTaken(label=name)

            await self._write(self._store.create, name, [embedding])
            self._gallery_service.publish(gallery.with_embedding(name, embedding))
            logger.info("New identity created", label=name, distance=match.distance)
            return IdentityCreated(label=name)

    async def import_batch(self, items: Iterable[Tuple[str, Frame]]) -> List[LabelImportResult]:
        """Seed identities from labeled frames.

        Labels are processed in the order they first appear. Labels that are
        already enrolled are skipped without running the detector. Each frame
        must contain exactly one face; other frames are rejected. The accepted
        embeddings of a label are written in a single create.

        Args:
            items: (label, frame) pairs

        Returns:
            One LabelImportResult per distinct label

        Raises:
            DetectorFailureError: If the detector fails
            StoreUnavailableError: If the gallery or the store is unavailable
        """
        grouped: Dict[str, List[Frame]] = {}
        for label, frame in items:
            name = (label or "").strip()
            if not name:
                raise ValueError("Import labels must not be empty")
            grouped.setdefault(name, []).append(frame)

        results = []
        for label, frames in grouped.items():
            if label in self._gallery_service.snapshot.labels:
                logger.info("Identity already enrolled, skipping import", label=label)
                results.append(LabelImportResult(label=label, status="already_enrolled"))
                continue

            embeddings, rejected = await self._collect_embeddings(label, frames)
            if not embeddings:
                logger.warning("No usable faces for label", label=label, rejected_frames=rejected)
                results.append(
                    LabelImportResult(label=label, status="no_usable_faces", rejected_frames=rejected)
                )
                continue

            async with self._gallery_service.mutation():
                gallery = self._gallery_service.snapshot
                if label in gallery.labels:
                    results.append(LabelImportResult(label=label, status="already_enrolled"))
                    continue

                await self._write(self._store.create, label, embeddings)
                self._gallery_service.publish(gallery.with_embeddings(label, embeddings))

            logger.info(
                "Embeddings for label written to store",
                label=label,
                embeddings=len(embeddings),
                rejected_frames=rejected,
            )
            results.append(
                LabelImportResult(
                    label=label,
                    status="created",
                    embeddings_count=len(embeddings),
                    rejected_frames=rejected,
                )
            )

        return results

    async def _collect_embeddings(self, label: str, frames: List[Frame]) -> Tuple[List[np.ndarray], int]:
        embeddings = []
        rejected = 0
        for frame in frames:
            try:
                observations = await self._session.detect(frame)
            except InvalidFrameError as e:
                logger.warning("Skipping undecodable frame", label=label, error=str(e))
                rejected += 1
                continue

            if len(observations) != 1:
                logger.warning(
                    "Skipping frame without exactly one face",
                    label=label,
                    faces_count=len(observations),
                )
                rejected += 1
                continue
            embeddings.append(self._validated(observations[0].embedding))
        return embeddings, rejected

    def _validated(self, embedding: np.ndarray) -> np.ndarray:
        try:
            return to_embedding(embedding, self.dimension)
        except CorruptEmbeddingError as e:
            logger.error("Detector produced a malformed embedding", error=str(e))
            raise DetectorFailureError("Detector produced a malformed embedding") from e

    async def _write(self, operation, label: str, payload) -> None:
        """Run a store write, logging failures before they propagate."""
        try:
            await operation(label, payload)
        except (StoreUnavailableError, IdentityExistsError, IdentityNotFoundError) as e:
            logger.error(
                "Failed to write face embeddings",
                label=label,
                operation=operation.__name__,
                error=str(e),
            )
            raise
