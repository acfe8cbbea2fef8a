"""SQLAlchemy implementation of the embedding store."""
from typing import Dict, List, Optional

import numpy as np
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from faceid.core.config import settings
from faceid.core.exceptions import (
    IdentityExistsError,
    StoreUnavailableError,
)
from faceid.core.logging import get_logger
from faceid.domain.entities.face import embedding_to_list, to_embedding
from faceid.domain.interfaces.storage.embedding_store import EmbeddingStore
from faceid.infrastructure.database.session import (
    create_engine,
    create_session_factory,
    create_tables,
    get_db_session,
)
from faceid.infrastructure.database.unit_of_work import UnitOfWork

logger = get_logger(__name__)


class SqlEmbeddingStore(EmbeddingStore):
    """Embedding store backed by a relational database.

    Identities live in ``identities``; every embedding is a row of
    ``face_embeddings`` holding the vector as a JSON list of floats.

    Example:
        ```python
        store = SqlEmbeddingStore.from_url("sqlite+aiosqlite:///./faceid.db")
        await store.initialize()
        identities = await store.load_all()
        ```
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        dimension: Optional[int] = None,
    ) -> None:
        """Initialize the store.

        Args:
            engine: Async SQLAlchemy engine
            session_factory: Session factory; created from the engine when omitted
            dimension: Embedding length enforced on load and write
        """
        self._engine = engine
        self._session_factory = session_factory or create_session_factory(engine)
        self.dimension = dimension or settings.EMBEDDING_DIMENSION

    @classmethod
    def from_url(cls, database_url: Optional[str] = None, dimension: Optional[int] = None) -> "SqlEmbeddingStore":
        return cls(create_engine(database_url), dimension=dimension)

    async def initialize(self) -> None:
        """Create the tables if they do not exist.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        try:
            await create_tables(self._engine)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to initialize embedding store", error=str(e))
            raise StoreUnavailableError(f"Failed to initialize embedding store: {str(e)}")
        logger.info("SQL embedding store initialized", url=self._engine.url.render_as_string())

    async def close(self) -> None:
        await self._engine.dispose()

    async def load_all(self) -> Dict[str, List[np.ndarray]]:
        try:
            async with get_db_session(self._session_factory) as session:
                identities = await UnitOfWork(session).identities.list_all()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to load identities", error=str(e))
            raise StoreUnavailableError(f"Failed to load identities: {str(e)}")

        loaded: Dict[str, List[np.ndarray]] = {}
        for identity in identities:
            if not identity.embeddings:
                logger.warning("Skipping identity without embeddings", label=identity.label)
                continue
            loaded[identity.label] = [
                to_embedding(record.vector, self.dimension) for record in identity.embeddings
            ]
        return loaded

    async def get(self, label: str) -> Optional[List[np.ndarray]]:
        try:
            async with get_db_session(self._session_factory) as session:
                identity = await UnitOfWork(session).identities.find_by_label(label)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to query identity", label=label, error=str(e))
            raise StoreUnavailableError(f"Failed to query identity {label}: {str(e)}")

        if identity is None:
            return None
        return [to_embedding(record.vector, self.dimension) for record in identity.embeddings]

    async def create(self, label: str, embeddings: List[np.ndarray]) -> None:
        if not embeddings:
            raise ValueError("An identity needs at least one embedding")
        vectors = [embedding_to_list(to_embedding(e, self.dimension)) for e in embeddings]

        try:
            async with get_db_session(self._session_factory) as session:
                async with UnitOfWork(session) as uow:
                    if await uow.identities.find_by_label(label) is not None:
                        raise IdentityExistsError(f"Identity already exists: {label}")
                    identity = await uow.identities.create(label)
                    for vector in vectors:
                        await uow.embeddings.add(identity, vector)
        except IntegrityError as e:
            raise IdentityExistsError(f"Identity already exists: {label}") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to create identity", label=label, error=str(e))
            raise StoreUnavailableError(f"Failed to create identity {label}: {str(e)}")

        logger.debug("Identity stored", label=label, embeddings=len(vectors))

    async def append(self, label: str, embedding: np.ndarray) -> None:
        vector = embedding_to_list(to_embedding(embedding, self.dimension))

        try:
            async with get_db_session(self._session_factory) as session:
                async with UnitOfWork(session) as uow:
                    identity = await uow.identities.get_by_label(label)
                    await uow.embeddings.add(identity, vector)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to append embedding", label=label, error=str(e))
            raise StoreUnavailableError(f"Failed to append embedding to {label}: {str(e)}")

        logger.debug("Embedding appended", label=label)
