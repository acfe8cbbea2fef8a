"""Shared fixtures: a scripted face detector, embeddings and stores."""
import asyncio
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest

from faceid.domain.entities.face import BoundingBox, FaceObservation
from faceid.domain.interfaces.recognition.face_detector import FaceDetector
from faceid.domain.value_objects.recognition import Frame
from faceid.infrastructure.storage import InMemoryEmbeddingStore
from faceid.services.enrollment import EnrollmentWorkflow
from faceid.services.matching.gallery_service import GalleryService
from faceid.services.recognition_session import RecognitionSession

DIM = 128
THRESHOLD = 0.6


def vector(index: int, scale: float = 1.0, dimension: int = DIM) -> np.ndarray:
    """Vector with a single non-zero component.

    Two vectors with different indexes are sqrt(2) apart, far beyond the
    default threshold.
    """
    v = np.zeros(dimension, dtype=np.float32)
    v[index] = scale
    return v


def shifted(base: np.ndarray, index: int, offset: float) -> np.ndarray:
    """Copy of ``base`` moved ``offset`` along one axis."""
    v = np.array(base, dtype=np.float32)
    v[index] += offset
    return v


class ScriptedDetector(FaceDetector):
    """Detector returning pre-registered embeddings for each frame.

    A frame is identified by the value of its first pixel.
    """

    def __init__(self, dimension: int = DIM) -> None:
        self._dimension = dimension
        self._script: Dict[int, List[np.ndarray]] = {}
        self.calls = 0
        self.error: Optional[BaseException] = None

    @property
    def embedding_dimension(self) -> int:
        return self._dimension

    def frame(self, *embeddings: np.ndarray) -> Frame:
        """Register a frame whose faces have the given embeddings."""
        key = len(self._script) + 1
        assert key < 256, "too many scripted frames"
        self._script[key] = list(embeddings)
        return Frame(pixels=np.full((8, 8, 3), key, dtype=np.uint8))

    async def detect(self, image: np.ndarray) -> List[FaceObservation]:
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        embeddings = self._script[int(image[0, 0, 0])]
        return [
            FaceObservation(
                embedding=embedding,
                bounding_box=BoundingBox(left=0.1 * i, top=0.1, width=0.1, height=0.2),
                confidence=0.99,
            )
            for i, embedding in enumerate(embeddings)
        ]


class FlakyStore(InMemoryEmbeddingStore):
    """In-memory store whose writes yield to the loop and can be made to fail."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_writes: Optional[BaseException] = None
        self.fail_loads: Optional[BaseException] = None

    async def load_all(self):
        if self.fail_loads is not None:
            raise self.fail_loads
        return await super().load_all()

    async def create(self, label, embeddings):
        await asyncio.sleep(0)
        if self.fail_writes is not None:
            raise self.fail_writes
        await super().create(label, embeddings)

    async def append(self, label, embedding):
        await asyncio.sleep(0)
        if self.fail_writes is not None:
            raise self.fail_writes
        await super().append(label, embedding)


def build_services(
    identities: Optional[Dict[str, Sequence[np.ndarray]]] = None,
    threshold: float = THRESHOLD,
    reject_name_conflicts: bool = False,
):
    detector = ScriptedDetector()
    store = FlakyStore(identities, dimension=DIM)
    gallery_service = GalleryService(store, dimension=DIM, threshold=threshold)
    session = RecognitionSession(detector, gallery_service)
    workflow = EnrollmentWorkflow(
        session, store, gallery_service, reject_name_conflicts=reject_name_conflicts
    )
    return detector, store, gallery_service, session, workflow


@pytest.fixture
def detector() -> ScriptedDetector:
    return ScriptedDetector()


@pytest.fixture
async def services():
    """Loaded services over an empty in-memory store."""
    detector, store, gallery_service, session, workflow = build_services()
    await gallery_service.load()
    return detector, store, gallery_service, session, workflow
