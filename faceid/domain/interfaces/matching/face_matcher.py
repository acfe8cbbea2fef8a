"""Face matcher interface."""
from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np

from ...value_objects.recognition import MatchResult


class FaceMatcher(ABC):
    """Interface for classifying an embedding against labeled embeddings.

    Implementations may use an exact scan or an approximate index, but must
    select labels the same way: closest vector wins, earliest enrolled
    identity wins exact ties, and a closest distance above the threshold
    yields the unknown label.
    """

    @abstractmethod
    def find_best_match(self, embedding: np.ndarray) -> MatchResult:
        """
        Find the label of the closest enrolled embedding.

        Args:
            embedding: Query embedding

        Returns:
            MatchResult with the matched label, or the unknown label

        Raises:
            CorruptEmbeddingError: If the query has the wrong dimension
        """

    @abstractmethod
    def with_embedding(self, label: str, embedding: np.ndarray) -> "FaceMatcher":
        """
        Return a new matcher that also knows ``embedding`` under ``label``.

        The receiver is left unchanged.
        """

    @abstractmethod
    def with_embeddings(self, label: str, embeddings: Sequence[np.ndarray]) -> "FaceMatcher":
        """
        Return a new matcher that also knows every one of ``embeddings`` under ``label``.

        Embeddings keep their order; the receiver is left unchanged.
        """

    @property
    @abstractmethod
    def labels(self) -> List[str]:
        """Enrolled labels in enrollment order."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of enrolled embeddings."""
