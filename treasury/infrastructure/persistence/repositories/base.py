"""Base repository: generic create/delete bound to the caller's session."""

from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from treasury.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with create and delete.

    Repositories never begin or commit: they flush into whatever
    transaction the caller (request dependency, relay cycle, consumer
    handler) has open.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def create(self, obj: ModelType) -> ModelType:
        """Add and flush a new record; server defaults are loaded back."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        await self.db.delete(obj)
        await self.db.flush()
