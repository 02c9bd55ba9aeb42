"""Territory catalog repository: read-only lookups on municipalities, permissions, job titles."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.application.dtos.catalog import (
    JobTitleResult,
    MunicipalityResult,
    PermissionResult,
)
from access_matrix.infrastructure.persistence.models.job_title import JobTitle
from access_matrix.infrastructure.persistence.models.municipality import Municipality
from access_matrix.infrastructure.persistence.models.permission import Permission


def _permission_to_result(p: Permission) -> PermissionResult:
    return PermissionResult(id=p.id, name=p.name, description=p.description, active=p.active)


class CatalogRepository:
    """Municipality, permission and job title catalogs. Never writes."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_existing_municipality_ids(self, ids: set[int] | list[int]) -> set[int]:
        if not ids:
            return set()
        result = await self.db.execute(
            select(Municipality.id).where(Municipality.id.in_(list(ids)))
        )
        return set(result.scalars().all())

    async def get_existing_permission_ids(self, ids: set[int] | list[int]) -> set[int]:
        if not ids:
            return set()
        result = await self.db.execute(
            select(Permission.id).where(Permission.id.in_(list(ids)))
        )
        return set(result.scalars().all())

    async def get_existing_job_title_ids(self, ids: set[int] | list[int]) -> set[int]:
        if not ids:
            return set()
        result = await self.db.execute(select(JobTitle.id).where(JobTitle.id.in_(list(ids))))
        return set(result.scalars().all())

    async def get_permission_by_id(self, permission_id: int) -> PermissionResult | None:
        result = await self.db.execute(select(Permission).where(Permission.id == permission_id))
        row = result.scalar_one_or_none()
        return _permission_to_result(row) if row else None

    async def get_active_permission_by_name(self, name: str) -> PermissionResult | None:
        """Return the active permission with this name, or None."""
        result = await self.db.execute(
            select(Permission).where(Permission.name == name, Permission.active.is_(True))
        )
        row = result.scalar_one_or_none()
        return _permission_to_result(row) if row else None

    async def municipality_names(self, ids: set[int] | list[int]) -> dict[int, str]:
        if not ids:
            return {}
        result = await self.db.execute(
            select(Municipality.id, Municipality.name).where(Municipality.id.in_(list(ids)))
        )
        return {row.id: row.name for row in result}

    async def permission_names(self, ids: set[int] | list[int]) -> dict[int, str]:
        if not ids:
            return {}
        result = await self.db.execute(
            select(Permission.id, Permission.name).where(Permission.id.in_(list(ids)))
        )
        return {row.id: row.name for row in result}

    async def list_municipalities(
        self, *, include_inactive: bool = False
    ) -> list[MunicipalityResult]:
        """Return municipalities ordered by their display number."""
        q = select(Municipality).order_by(Municipality.num.asc())
        if not include_inactive:
            q = q.where(Municipality.active.is_(True))
        result = await self.db.execute(q)
        return [
            MunicipalityResult(id=m.id, num=m.num, name=m.name, active=m.active)
            for m in result.scalars().all()
        ]

    async def list_permissions(self, *, include_inactive: bool = False) -> list[PermissionResult]:
        q = select(Permission).order_by(Permission.id.asc())
        if not include_inactive:
            q = q.where(Permission.active.is_(True))
        result = await self.db.execute(q)
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def list_job_titles(self, *, include_inactive: bool = False) -> list[JobTitleResult]:
        q = select(JobTitle).order_by(JobTitle.name.asc())
        if not include_inactive:
            q = q.where(JobTitle.active.is_(True))
        result = await self.db.execute(q)
        return [
            JobTitleResult(id=j.id, name=j.name, active=j.active)
            for j in result.scalars().all()
        ]
