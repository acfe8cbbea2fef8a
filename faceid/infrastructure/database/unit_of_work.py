"""Transaction scope over the identity and embedding repositories."""
from types import TracebackType
from typing import Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from faceid.infrastructure.database.repositories import FaceEmbeddingRepository, IdentityRepository


class UnitOfWork:
    """Groups the writes of one store operation into a single transaction.

    Leaving the ``async with`` block commits; an exception rolls back, so a
    failed ``create`` never leaves an identity without its embeddings.

    Example:
        ```python
        async with get_db_session(session_factory) as session:
            async with UnitOfWork(session) as uow:
                identity = await uow.identities.create("alice")
                await uow.embeddings.add(identity, vector)
        ```
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.identities = IdentityRepository(session)
        self.embeddings = FaceEmbeddingRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if exc_type is None:
            await self.session.commit()
        else:
            await self.session.rollback()
