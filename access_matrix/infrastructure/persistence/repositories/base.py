"""Base repository: generic lookups and create/update for integer-keyed models."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with get_by_id, get_existing_ids, create and update."""

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_by_id(self, entity_id: int) -> ModelType | None:
        """Return a single record by primary key, or None."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def get_existing_ids(self, ids: set[int] | list[int]) -> set[int]:
        """Return the subset of ids that exist in the table."""
        if not ids:
            return set()
        model: Any = self.model
        result = await self.db.execute(select(model.id).where(model.id.in_(list(ids))))
        return set(result.scalars().all())

    async def create(self, obj: ModelType) -> ModelType:
        """Persist a new record and reload server defaults."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush changes on an attached record and reload server-side values."""
        await self.db.flush()
        await self.db.refresh(obj)
        return obj
