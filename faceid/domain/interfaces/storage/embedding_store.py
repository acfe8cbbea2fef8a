"""Embedding store interface for labeled face embeddings."""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import numpy as np


class EmbeddingStore(ABC):
    """Interface for persisting labeled face embeddings.

    Labels map to a non-empty, insertion-ordered list of embeddings.
    """

    @abstractmethod
    async def load_all(self) -> Dict[str, List[np.ndarray]]:
        """
        Load every enrolled identity.

        Returns:
            Mapping of label to embeddings, earliest enrolled identity first

        Raises:
            StoreUnavailableError: If the backing store cannot be reached
            CorruptEmbeddingError: If a stored vector fails validation
        """

    @abstractmethod
    async def get(self, label: str) -> Optional[List[np.ndarray]]:
        """
        Get the embeddings enrolled under a label.

        Args:
            label: Identity label

        Returns:
            The embeddings, or None if the label is not enrolled

        Raises:
            StoreUnavailableError: If the backing store cannot be reached
        """

    @abstractmethod
    async def create(self, label: str, embeddings: List[np.ndarray]) -> None:
        """
        Enroll a new identity.

        Args:
            label: New identity label
            embeddings: At least one embedding

        Raises:
            IdentityExistsError: If the label is already enrolled
            StoreUnavailableError: If the backing store cannot be reached
        """

    @abstractmethod
    async def append(self, label: str, embedding: np.ndarray) -> None:
        """
        Append an embedding to an enrolled identity.

        Args:
            label: Existing identity label
            embedding: Embedding to append

        Raises:
            IdentityNotFoundError: If the label is not enrolled
            StoreUnavailableError: If the backing store cannot be reached
        """
