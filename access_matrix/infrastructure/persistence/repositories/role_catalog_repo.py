"""Role catalog repository: roles and their base permissions.

The access-matrix engine consults it read-only through
expand_roles_to_permissions; role CRUD lives here too.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.application.dtos.catalog import RoleResult
from access_matrix.domain.exceptions import (
    ConflictException,
    ResourceNotFoundException,
)
from access_matrix.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from access_matrix.infrastructure.persistence.models.role import Role, UserRole
from access_matrix.infrastructure.persistence.repositories.base import BaseRepository
from access_matrix.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _role_to_result(r: Role) -> RoleResult:
    """Map ORM Role to application RoleResult."""
    return RoleResult(id=r.id, name=r.name, description=r.description, active=r.active)


class RoleCatalogRepository(BaseRepository[Role]):
    """Roles and role -> base permission links."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    async def expand_roles_to_permissions(
        self, role_ids: list[int] | set[int], active_only: bool = True
    ) -> list[int]:
        """Return the deduplicated, sorted permission ids granted by role_ids.

        With active_only, inactive roles and inactive permissions contribute nothing.
        """
        if not role_ids:
            return []
        query = (
            select(RolePermission.permission_id)
            .join(Role, Role.id == RolePermission.role_id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id.in_(list(role_ids)))
            .distinct()
        )
        if active_only:
            query = query.where(Role.active.is_(True), Permission.active.is_(True))
        result = await self.db.execute(query)
        return sorted(set(result.scalars().all()))

    async def list_roles(self, *, include_inactive: bool = False) -> list[RoleResult]:
        q = select(Role).order_by(Role.id.asc())
        if not include_inactive:
            q = q.where(Role.active.is_(True))
        result = await self.db.execute(q)
        return [_role_to_result(r) for r in result.scalars().all()]

    async def get_by_name(self, name: str) -> RoleResult | None:
        result = await self.db.execute(select(Role).where(Role.name == name))
        row = result.scalar_one_or_none()
        return _role_to_result(row) if row else None

    async def create_role(
        self,
        name: str,
        description: str | None = None,
        permission_ids: list[int] | None = None,
    ) -> RoleResult:
        """Create a role with optional base permissions.

        Raises:
            ConflictException: If a role with the same name exists.
            ResourceNotFoundException: If a permission id does not exist.
        """
        if await self.get_by_name(name):
            raise ConflictException(
                f"Role with name '{name}' already exists", details={"name": name}
            )
        try:
            role = await self.create(Role(name=name, description=description))
        except IntegrityError:
            raise ConflictException(
                f"Role with name '{name}' already exists", details={"name": name}
            ) from None
        if permission_ids:
            await self.set_role_permissions(role.id, permission_ids)
        logger.info("Created role %s (%s)", role.id, name)
        return _role_to_result(role)

    async def set_role_permissions(self, role_id: int, permission_ids: list[int]) -> None:
        """Replace the base permissions of a role."""
        wanted = set(permission_ids)
        if wanted:
            result = await self.db.execute(
                select(Permission.id).where(Permission.id.in_(list(wanted)))
            )
            missing = wanted - set(result.scalars().all())
            if missing:
                raise ResourceNotFoundException("permission", sorted(missing))
        await self.db.execute(
            delete(RolePermission).where(RolePermission.role_id == role_id)
        )
        self.db.add_all(
            RolePermission(role_id=role_id, permission_id=pid) for pid in sorted(wanted)
        )
        await self.db.flush()

    async def get_role_names_for_user(self, user_id: int) -> list[str]:
        """Return names of the user's current (not soft-deleted) roles."""
        result = await self.db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id, UserRole.deleted_at.is_(None))
            .order_by(Role.id.asc())
        )
        return list(result.scalars().all())
