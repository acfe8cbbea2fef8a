"""Domain entities package."""
from .face import BoundingBox, FaceObservation, embedding_to_list, to_embedding

__all__ = ["BoundingBox", "FaceObservation", "embedding_to_list", "to_embedding"]
