"""Process-local embedding store."""
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from faceid.core.config import settings
from faceid.core.exceptions import IdentityExistsError, IdentityNotFoundError
from faceid.core.logging import get_logger
from faceid.domain.entities.face import to_embedding
from faceid.domain.interfaces.storage.embedding_store import EmbeddingStore

logger = get_logger(__name__)


class InMemoryEmbeddingStore(EmbeddingStore):
    """Embedding store that keeps everything in a dict.

    Nothing survives a restart. Useful for development and tests.
    """

    def __init__(
        self,
        identities: Optional[Mapping[str, Sequence[np.ndarray]]] = None,
        dimension: Optional[int] = None,
    ) -> None:
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self._identities: Dict[str, List[np.ndarray]] = {}
        for label, embeddings in (identities or {}).items():
            self._identities[label] = [to_embedding(e, self.dimension) for e in embeddings]

    async def load_all(self) -> Dict[str, List[np.ndarray]]:
        return {label: list(embeddings) for label, embeddings in self._identities.items()}

    async def get(self, label: str) -> Optional[List[np.ndarray]]:
        embeddings = self._identities.get(label)
        return list(embeddings) if embeddings is not None else None

    async def create(self, label: str, embeddings: List[np.ndarray]) -> None:
        if not embeddings:
            raise ValueError("An identity needs at least one embedding")
        if label in self._identities:
            raise IdentityExistsError(f"Identity already exists: {label}")
        self._identities[label] = [to_embedding(e, self.dimension) for e in embeddings]
        logger.debug("Identity stored", label=label, embeddings=len(embeddings))

    async def append(self, label: str, embedding: np.ndarray) -> None:
        if label not in self._identities:
            raise IdentityNotFoundError(f"Identity not found: {label}")
        self._identities[label].append(to_embedding(embedding, self.dimension))
        logger.debug("Embedding appended", label=label)
