"""Core face domain entities."""
from typing import Iterable, List, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from faceid.core.exceptions import CorruptEmbeddingError

EmbeddingLike = Union[np.ndarray, Iterable[float]]


def to_embedding(values: EmbeddingLike, dimension: int) -> np.ndarray:
    """Build an immutable embedding vector from raw values.

    Args:
        values: Ordered floats, as stored or as produced by the detector
        dimension: Expected vector length

    Returns:
        Read-only float32 vector of length ``dimension``

    Raises:
        CorruptEmbeddingError: If the values are not a finite vector of the expected length
    """
    try:
        vector = np.array(values, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise CorruptEmbeddingError(f"Embedding is not numeric: {e}") from e

    if vector.ndim != 1 or vector.shape[0] != dimension:
        raise CorruptEmbeddingError(
            f"Embedding has shape {vector.shape}, expected ({dimension},)",
            details={"expected_dimension": dimension, "shape": list(vector.shape)},
        )
    if not np.all(np.isfinite(vector)):
        raise CorruptEmbeddingError("Embedding contains non-finite values")

    vector.flags.writeable = False
    return vector


def embedding_to_list(embedding: np.ndarray) -> List[float]:
    """Serialize an embedding as an ordered list of floats."""
    return [float(value) for value in embedding]


class BoundingBox(BaseModel):
    """Face bounding box coordinates."""
    left: float = Field(..., description="Left coordinate of the bounding box")
    top: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., description="Width of the bounding box")
    height: float = Field(..., description="Height of the bounding box")


class FaceObservation(BaseModel):
    """A face found in one frame: its embedding and where it was detected.

    Observations are produced by the detector, consumed once by a request and
    never persisted.
    """
    embedding: np.ndarray = Field(..., description="Face embedding vector")
    bounding_box: BoundingBox = Field(..., description="Bounding box coordinates (0-1)")
    confidence: float = Field(1.0, description="Confidence score of the detection")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: EmbeddingLike) -> np.ndarray:
        """Convert the embedding to a read-only float vector."""
        vector = np.array(v, dtype=np.float32)
        if vector.ndim != 1:
            raise ValueError("Embedding must be one-dimensional")
        vector.flags.writeable = False
        return vector
