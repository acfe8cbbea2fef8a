"""Recognition of the faces in one frame against the enrolled gallery."""
import asyncio
from typing import List

from faceid.core.exceptions import (
    CorruptEmbeddingError,
    DetectorFailureError,
    DetectorTimeoutError,
    InvalidFrameError,
    StoreUnavailableError,
)
from faceid.core.logging import get_logger
from faceid.domain.entities.face import FaceObservation
from faceid.domain.interfaces.recognition.face_detector import FaceDetector
from faceid.domain.value_objects.recognition import Frame, MatchResult
from faceid.services.matching.gallery_service import GalleryService

logger = get_logger(__name__)


class RecognitionSession:
    """Turns a frame into one label per detected face.

    This service:
    1. Short-circuits empty frames without calling the detector
    2. Uses the face detector for detection and embedding extraction
    3. Matches every embedding against the current gallery snapshot

    Example:
        ```python
        session = RecognitionSession(detector, gallery_service)

        names = await session.recognize(Frame.from_data_url(frame_data))
        # ["alice", "unknown"]
        ```
    """

    def __init__(self, detector: FaceDetector, gallery_service: GalleryService) -> None:
        """Initialize the recognition session.

        Args:
            detector: Face detector producing embeddings
            gallery_service: Owner of the gallery snapshot to match against
        """
        self.detector = detector
        self.gallery_service = gallery_service

    async def detect(self, frame: Frame) -> List[FaceObservation]:
        """Run the detector on a frame.

        Args:
            frame: Decoded frame

        Returns:
            Detected faces in detector order; empty for the empty frame

        Raises:
            InvalidFrameError: If the detector cannot handle the frame
            DetectorFailureError: If the detector fails
            DetectorTimeoutError: If the detector does not answer in time
        """
        if frame.is_empty:
            logger.debug("Empty frame, skipping detection")
            return []

        try:
            observations = await self.detector.detect(frame.pixels)
        except (InvalidFrameError, DetectorFailureError):
            raise
        except asyncio.TimeoutError as e:
            logger.error("Face detector timed out")
            raise DetectorTimeoutError("Face detector timed out") from e
        except Exception as e:
            logger.error("Face detector failed", error=str(e), exc_info=True)
            raise DetectorFailureError(f"Face detection failed: {str(e)}") from e

        logger.debug("Faces detected", faces_count=len(observations))
        return list(observations)

    async def match(self, frame: Frame) -> List[MatchResult]:
        """Detect faces and match each against the gallery.

        Returns:
            One MatchResult per detected face, in detector order

        Raises:
            StoreUnavailableError: If no gallery is loaded
        """
        if frame.is_empty:
            return []

        # Fail before running the model when there is nothing to match against
        gallery = self.gallery_service.snapshot
        observations = await self.detect(frame)

        results = []
        for observation in observations:
            try:
                results.append(gallery.find_best_match(observation.embedding))
            except CorruptEmbeddingError:
                logger.error(
                    "Detector produced an embedding of unexpected shape",
                    shape=list(observation.embedding.shape),
                )
                raise DetectorFailureError("Detector produced a malformed embedding")
        return results

    async def recognize(self, frame: Frame) -> List[str]:
        """Label every face in a frame.

        Args:
            frame: Decoded frame

        Returns:
            One label per detected face ("unknown" for unmatched faces), in detector order

        Raises:
            InvalidFrameError: If the frame cannot be processed
            DetectorFailureError: If the detector fails
            StoreUnavailableError: If no gallery is loaded
        """
        try:
            results = await self.match(frame)
        except StoreUnavailableError as e:
            logger.error("Gallery unavailable for recognition", error=str(e))
            raise

        names = [result.label for result in results]
        if names:
            logger.info("Recognized faces", names=names)
        return names
