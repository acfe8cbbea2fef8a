"""Service interfaces package."""
from .matching import FaceMatcher
from .recognition import FaceDetector
from .storage import EmbeddingStore

__all__ = ["EmbeddingStore", "FaceDetector", "FaceMatcher"]
