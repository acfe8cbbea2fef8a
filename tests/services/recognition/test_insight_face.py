"""Tests for the InsightFace detector."""
import time
from pathlib import Path
from types import SimpleNamespace
from typing import List

import cv2
import numpy as np
import pytest

pytest.importorskip("insightface")

from faceid.core.exceptions import DetectorFailureError, DetectorTimeoutError, InvalidFrameError  # noqa: E402
from faceid.domain.entities.face import FaceObservation  # noqa: E402
from faceid.services.recognition.insight_face import InsightFaceDetector  # noqa: E402

# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent.parent.parent / "fixtures"


class FakeModel:
    """Stands in for FaceAnalysis: returns canned faces, optionally slowly."""

    def __init__(self, faces, delay: float = 0.0):
        self.faces = faces
        self.delay = delay
        self.images = []

    def get(self, img):
        self.images.append(img)
        if self.delay:
            time.sleep(self.delay)
        return self.faces


def fake_face(score: float, embedding=None, bbox=(10, 20, 50, 80)):
    if embedding is None:
        embedding = np.full(512, 1 / np.sqrt(512), dtype=np.float32)
    return SimpleNamespace(bbox=np.array(bbox, dtype=np.float32), det_score=score, normed_embedding=embedding)


def detector_with(model, min_confidence: float = 0.5, timeout: float = 5.0) -> InsightFaceDetector:
    """Build a detector around a fake model, skipping the model download."""
    detector = InsightFaceDetector.__new__(InsightFaceDetector)
    detector.model_name = "fake"
    detector.min_confidence = min_confidence
    detector.timeout = timeout
    detector.model = model
    return detector


class TestWithFakeModel:
    async def test_low_confidence_faces_are_dropped(self):
        model = FakeModel([fake_face(0.9), fake_face(0.3), fake_face(0.5)])

        observations = await detector_with(model).detect(np.zeros((100, 200, 3), dtype=np.uint8))

        assert [o.confidence for o in observations] == [0.9, 0.5]
        assert observations[0].embedding.shape == (512,)

    async def test_bounding_box_is_normalised(self):
        model = FakeModel([fake_face(0.9, bbox=(20, 10, 60, 90))])

        observation, = await detector_with(model).detect(np.zeros((100, 200, 3), dtype=np.uint8))

        assert observation.bounding_box.left == pytest.approx(0.1)
        assert observation.bounding_box.top == pytest.approx(0.1)
        assert observation.bounding_box.width == pytest.approx(0.2)
        assert observation.bounding_box.height == pytest.approx(0.8)

    async def test_grayscale_and_bgra_frames_are_converted(self):
        model = FakeModel([])
        detector = detector_with(model)

        await detector.detect(np.zeros((10, 10), dtype=np.uint8))
        await detector.detect(np.zeros((10, 10, 4), dtype=np.uint8))

        assert [img.shape for img in model.images] == [(10, 10, 3), (10, 10, 3)]

    @pytest.mark.parametrize(
        "image",
        [np.zeros((0, 0, 3), dtype=np.uint8), np.zeros((10, 10, 2), dtype=np.uint8), "pixels"],
    )
    async def test_unusable_frames(self, image):
        with pytest.raises(InvalidFrameError):
            await detector_with(FakeModel([])).detect(image)

    async def test_slow_model_times_out(self):
        detector = detector_with(FakeModel([], delay=0.5), timeout=0.05)

        with pytest.raises(DetectorTimeoutError):
            await detector.detect(np.zeros((10, 10, 3), dtype=np.uint8))

    async def test_model_errors_are_wrapped(self):
        class BrokenModel:
            def get(self, img):
                raise RuntimeError("onnxruntime error")

        with pytest.raises(DetectorFailureError):
            await detector_with(BrokenModel()).detect(np.zeros((10, 10, 3), dtype=np.uint8))

    async def test_released_detector_refuses_work(self):
        detector = detector_with(FakeModel([]))
        async with detector:
            pass

        with pytest.raises(DetectorFailureError):
            await detector.detect(np.zeros((10, 10, 3), dtype=np.uint8))


def load_fixture(name: str) -> np.ndarray:
    path = FIXTURES_DIR / "images" / name
    if not path.exists():
        pytest.skip(f"fixture image {name} not available")
    return cv2.imread(str(path))


def save_detection_visualization(image: np.ndarray, faces: List[FaceObservation], name: str):
    """Save image with detected faces drawn for visual verification."""
    debug_dir = Path(__file__).parent.parent / "debug_output"
    debug_dir.mkdir(exist_ok=True)

    img = image.copy()
    height, width = img.shape[:2]
    for face in faces:
        left = int(face.bounding_box.left * width)
        top = int(face.bounding_box.top * height)
        right = int((face.bounding_box.left + face.bounding_box.width) * width)
        bottom = int((face.bounding_box.top + face.bounding_box.height) * height)

        cv2.rectangle(img, (left, top), (right, bottom), (0, 255, 0), 2)
        cv2.putText(img, f"{face.confidence:.2f}", (left, top - 10),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 0), 2)

    output_path = debug_dir / f"{name}_detection.jpg"
    cv2.imwrite(str(output_path), img)
    print(f"Detection visualization saved: {output_path}")


@pytest.fixture(scope="module")
def detector():
    """Real InsightFace detector; downloads the model pack on first use."""
    try:
        return InsightFaceDetector()
    except Exception as e:
        pytest.skip(f"InsightFace model unavailable: {e}")


@pytest.mark.skipif(not (FIXTURES_DIR / "images").is_dir(), reason="fixture images not available")
class TestWithRealModel:
    """Detection on real photos in tests/fixtures/images."""

    async def test_detect_single_face(self, detector):
        image = load_fixture("single_face.jpg")

        faces = await detector.detect(image)

        assert len(faces) == 1
        face = faces[0]
        print(f"\nSingle face detection: confidence={face.confidence:.2f}")
        assert face.confidence > 0.8, "Face detection confidence should be good"
        assert face.embedding.shape == (512,)
        assert np.linalg.norm(face.embedding) == pytest.approx(1.0, abs=1e-3)

        face_area = face.bounding_box.width * face.bounding_box.height
        assert 0.05 < face_area < 0.9, "Face size seems unreasonable"
        save_detection_visualization(image, faces, "single_face")

    async def test_detect_multiple_faces(self, detector):
        image = load_fixture("multiple_faces.jpg")

        faces = await detector.detect(image)

        assert len(faces) > 1
        for face in faces:
            assert face.confidence > 0.5
            face_area = face.bounding_box.width * face.bounding_box.height
            assert 0.001 < face_area < 0.5, "Face size seems unreasonable"
        save_detection_visualization(image, faces, "multiple_faces")

    async def test_no_face_detected(self, detector):
        faces = await detector.detect(load_fixture("no_faces.jpg"))

        assert faces == []
