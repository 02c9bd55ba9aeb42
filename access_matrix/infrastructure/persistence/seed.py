"""Idempotent seed data: permission catalog, default roles and job titles."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.infrastructure.persistence.database import dialect_insert
from access_matrix.infrastructure.persistence.models.job_title import JobTitle
from access_matrix.infrastructure.persistence.models.permission import Permission
from access_matrix.infrastructure.persistence.repositories.role_catalog_repo import (
    RoleCatalogRepository,
)
from access_matrix.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PERMISSIONS: dict[str, str] = {
    "view": "Read records of the municipality",
    "edit": "Create and modify records",
    "delete": "Remove records",
    "print": "Print records",
    "download": "Export records",
}

# role name -> (description, base permission names)
DEFAULT_ROLES: dict[str, tuple[str, list[str]]] = {
    "administrador": ("Full access", ["view", "edit", "delete", "print", "download"]),
    "operador": ("Day-to-day operation", ["view", "edit", "print", "download"]),
    "consulta": ("Read only", ["view"]),
}

DEFAULT_JOB_TITLES: list[str] = ["Director", "Jefe de área", "Auxiliar"]


async def seed_catalogs(db: AsyncSession) -> dict[str, int]:
    """Insert missing permissions, roles and job titles. Existing rows are kept as is.

    Returns the number of rows created per catalog.
    """
    created = {"permissions": 0, "roles": 0, "job_titles": 0}

    result = await db.execute(
        dialect_insert(db, Permission)
        .values([{"name": n, "description": d} for n, d in DEFAULT_PERMISSIONS.items()])
        .on_conflict_do_nothing(index_elements=["name"])
    )
    created["permissions"] = result.rowcount or 0

    rows = await db.execute(select(Permission.id, Permission.name))
    permission_ids = {row.name: row.id for row in rows}

    roles = RoleCatalogRepository(db)
    for name, (description, permission_names) in DEFAULT_ROLES.items():
        if await roles.get_by_name(name) is not None:
            continue
        await roles.create_role(
            name,
            description,
            [permission_ids[p] for p in permission_names if p in permission_ids],
        )
        created["roles"] += 1

    result = await db.execute(
        dialect_insert(db, JobTitle)
        .values([{"name": n} for n in DEFAULT_JOB_TITLES])
        .on_conflict_do_nothing(index_elements=["name"])
    )
    created["job_titles"] = result.rowcount or 0

    logger.info("Seeded catalogs: %s", created)
    return created
