"""Immutable gallery snapshot and exact nearest-neighbour matcher."""
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from faceid.core.exceptions import CorruptEmbeddingError
from faceid.domain.entities.face import to_embedding
from faceid.domain.interfaces.matching.face_matcher import FaceMatcher
from faceid.domain.value_objects.recognition import MatchResult


class Gallery(FaceMatcher):
    """Read-only snapshot of every (label, embedding) pair.

    Rows are kept in enrollment order: identities in the order they were
    enrolled, embeddings of one identity in insertion order. ``np.argmin``
    returns the first minimum, so exact distance ties go to the identity
    enrolled earliest.

    A gallery is never modified in place. ``with_embedding`` builds a new
    snapshot that shares nothing mutable with the old one, so readers can keep
    using whatever snapshot they started with.

    Example:
        ```python
        gallery = Gallery.from_identities({"alice": [v1]}, dimension=128, threshold=0.6)
        gallery.find_best_match(v1).label  # "alice"
        ```
    """

    def __init__(
        self,
        rows: Sequence[Tuple[str, np.ndarray]],
        dimension: int,
        threshold: float,
        unknown_label: str = "unknown",
    ) -> None:
        """Build a gallery from flattened rows.

        Args:
            rows: (label, embedding) pairs in enrollment order
            dimension: Embedding length every row and query must have
            threshold: Maximum distance (inclusive) for a match
            unknown_label: Label reported when nothing is close enough
        """
        self.dimension = dimension
        self.threshold = float(threshold)
        self.unknown_label = unknown_label

        self._row_labels: Tuple[str, ...] = tuple(label for label, _ in rows)
        if rows:
            matrix = np.stack([to_embedding(vector, dimension) for _, vector in rows])
        else:
            matrix = np.empty((0, dimension), dtype=np.float32)
        matrix.flags.writeable = False
        self._matrix = matrix
        self._labels: Tuple[str, ...] = tuple(dict.fromkeys(self._row_labels))

    @classmethod
    def from_identities(
        cls,
        identities: Mapping[str, Sequence[np.ndarray]],
        dimension: int,
        threshold: float,
        unknown_label: str = "unknown",
    ) -> "Gallery":
        """Flatten a label -> embeddings mapping into a gallery."""
        rows = [
            (label, embedding)
            for label, embeddings in identities.items()
            for embedding in embeddings
        ]
        return cls(rows, dimension=dimension, threshold=threshold, unknown_label=unknown_label)

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    @property
    def size(self) -> int:
        return len(self._row_labels)

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def embeddings_for(self, label: str) -> List[np.ndarray]:
        """Embeddings enrolled under ``label``, in insertion order."""
        return [self._matrix[i] for i, row_label in enumerate(self._row_labels) if row_label == label]

    def identities(self) -> Dict[str, List[np.ndarray]]:
        """Rebuild the label -> embeddings mapping."""
        return {label: self.embeddings_for(label) for label in self._labels}

    def find_best_match(self, embedding: np.ndarray) -> MatchResult:
        query = np.asarray(embedding, dtype=np.float32)
        if query.ndim != 1 or query.shape[0] != self.dimension:
            raise CorruptEmbeddingError(
                f"Query embedding has shape {query.shape}, expected ({self.dimension},)"
            )

        if not self._row_labels:
            return MatchResult(label=self.unknown_label, distance=float("inf"), matched=False)

        distances = np.linalg.norm(self._matrix - query, axis=1)
        best = int(np.argmin(distances))
        distance = float(distances[best])

        if distance <= self.threshold:
            return MatchResult(label=self._row_labels[best], distance=distance, matched=True)
        return MatchResult(label=self.unknown_label, distance=distance, matched=False)

    def with_embedding(self, label: str, embedding: np.ndarray) -> "Gallery":
        return self.with_embeddings(label, [embedding])

    def with_embeddings(self, label: str, embeddings: Sequence[np.ndarray]) -> "Gallery":
        """Return a new gallery with ``embeddings`` appended under ``label``.

        Rows stay grouped by identity, so an existing label keeps its place in
        enrollment order and a new label is ordered after every existing one.
        """
        identities = self.identities()
        identities.setdefault(label, []).extend(embeddings)
        return Gallery.from_identities(
            identities,
            dimension=self.dimension,
            threshold=self.threshold,
            unknown_label=self.unknown_label,
        )
