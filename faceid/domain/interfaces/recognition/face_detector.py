"""Face detector interface."""
from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ...entities.face import FaceObservation


class FaceDetector(ABC):
    """Interface for face detection and embedding extraction."""

    @property
    @abstractmethod
    def embedding_dimension(self) -> int:
        """Length of the embeddings this detector produces."""

    @abstractmethod
    async def detect(self, image: np.ndarray) -> List[FaceObservation]:
        """
        Detect faces in a decoded image and extract their embeddings.

        Args:
            image: Decoded image (H x W x 3, BGR)

        Returns:
            One FaceObservation per detected face, in detector order.
            Returns an empty list if no faces are detected.

        Raises:
            InvalidFrameError: If the image cannot be processed by the model
            DetectorFailureError: If the model fails
            DetectorTimeoutError: If the model does not answer in time
        """
