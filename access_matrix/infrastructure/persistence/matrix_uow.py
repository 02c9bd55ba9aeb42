"""SQLAlchemy binding of the engine's unit-of-work port."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.application.interfaces.repositories import MatrixRepositories
from access_matrix.infrastructure.persistence.database import run_after_commit, unit_of_work
from access_matrix.infrastructure.persistence.repositories import (
    AccessGrantRepository,
    CatalogRepository,
    IdentityRepository,
    RoleCatalogRepository,
)


def sql_matrix_repositories(db: AsyncSession) -> MatrixRepositories:
    """Bind every matrix port to db."""
    return MatrixRepositories(
        roles=RoleCatalogRepository(db),
        identity=IdentityRepository(db),
        catalog=CatalogRepository(db),
        grants=AccessGrantRepository(db),
        after_commit=partial(run_after_commit, db),
    )


@asynccontextmanager
async def sql_matrix_unit_of_work(db: AsyncSession) -> AsyncIterator[MatrixRepositories]:
    """Open or join a transaction on db and yield its repositories."""
    async with unit_of_work(db):
        yield sql_matrix_repositories(db)
