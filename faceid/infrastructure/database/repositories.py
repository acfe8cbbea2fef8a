"""Database repositories for the face identity service."""
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from faceid.core.exceptions import IdentityNotFoundError
from faceid.infrastructure.database.models import FaceEmbedding, Identity


class IdentityRepository:
    """Repository for identity operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def list_all(self) -> List[Identity]:
        """Get every identity with its embeddings, in enrollment order."""
        stmt = (
            select(Identity)
            .order_by(Identity.sequence)
            .options(selectinload(Identity.embeddings))
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_label(self, label: str) -> Optional[Identity]:
        """Get identity by label, or None."""
        stmt = (
            select(Identity)
            .where(Identity.label == label)
            .options(selectinload(Identity.embeddings))
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_label(self, label: str) -> Identity:
        """Get identity by label.

        Raises:
            IdentityNotFoundError: If no identity has the label
        """
        identity = await self.find_by_label(label)
        if identity is None:
            raise IdentityNotFoundError(f"Identity not found: {label}")
        return identity

    async def create(self, label: str) -> Identity:
        """Create a new identity ordered after every existing one."""
        stmt = select(func.coalesce(func.max(Identity.sequence), 0))
        last_sequence = (await self._session.execute(stmt)).scalar_one()

        identity = Identity(label=label, sequence=last_sequence + 1, embeddings=[])
        self._session.add(identity)
        await self._session.flush()
        return identity


class FaceEmbeddingRepository:
    """Repository for embedding operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def add(self, identity: Identity, vector: List[float]) -> FaceEmbedding:
        """Append an embedding after the identity's existing ones.

        Args:
            identity: Owning identity, with embeddings loaded
            vector: Serialized embedding

        Returns:
            FaceEmbedding: Created record
        """
        position = max((embedding.position for embedding in identity.embeddings), default=-1) + 1
        embedding = FaceEmbedding(identity_id=identity.id, position=position, vector=vector)
        identity.embeddings.append(embedding)
        self._session.add(embedding)
        await self._session.flush()
        return embedding
