"""SQLAlchemy models for the face identity service."""
import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Identity(Base):
    """Enrolled identity, keyed by its label."""

    __tablename__ = "identities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    label: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Name the identity was first enrolled under"
    )
    # Enrollment order; also the tie-break order of the matcher
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow
    )

    # Relationships
    embeddings: Mapped[List["FaceEmbedding"]] = relationship(
        back_populates="identity",
        cascade="all, delete-orphan",
        order_by="FaceEmbedding.position"
    )


class FaceEmbedding(Base):
    """One embedding vector enrolled under an identity."""

    __tablename__ = "face_embeddings"
    __table_args__ = (
        Index('idx_face_embeddings_identity_position', 'identity_id', 'position', unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    identity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("identities.id", ondelete="CASCADE")
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Insertion order within the identity"
    )
    vector: Mapped[List[float]] = mapped_column(
        JSON,
        nullable=False,
        comment="Embedding serialized as an ordered list of floats"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow
    )

    # Relationships
    identity: Mapped[Identity] = relationship(
        back_populates="embeddings"
    )
