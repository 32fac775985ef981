"""Shared repository plumbing."""

from collections.abc import Sequence
from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.infrastructure.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base class holding the session and common write helpers.

    Repositories never commit; the unit of work owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save(self, entity: ModelT) -> ModelT:
        """Add an entity and flush so generated ids are available.

        Args:
            entity: Entity to save.

        Returns:
            Saved entity.
        """
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def save_all(self, entities: Sequence[ModelT]) -> list[ModelT]:
        """Add multiple entities and flush.

        Args:
            entities: Entities to save.

        Returns:
            Saved entities.
        """
        self.session.add_all(entities)
        await self.session.flush()
        return list(entities)

    async def remove(self, entity: ModelT) -> None:
        """Delete an entity and flush."""
        await self.session.delete(entity)
        await self.session.flush()
