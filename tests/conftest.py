"""Pytest configuration and fixtures for access-matrix.

DB-dependent tests run against in-memory SQLite (aiosqlite + StaticPool) so
every session in a test shares one connection and one schema. Catalog rows
are committed by the `catalog` fixture; each test then drives the engine
through its own session.
"""

import os
from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from access_matrix.application.services.access_matrix_engine import (  # noqa: E402
    AccessMatrixEngine,
)
from access_matrix.application.services.provisioning_policy import (  # noqa: E402
    PermissionExpander,
)
from access_matrix.application.services.user_service import UserService  # noqa: E402
from access_matrix.infrastructure.persistence import models  # noqa: E402
from access_matrix.infrastructure.persistence.database import Base  # noqa: E402
from access_matrix.infrastructure.persistence.matrix_uow import (  # noqa: E402
    sql_matrix_unit_of_work,
)
from access_matrix.shared.context import clear_current_user  # noqa: E402


@dataclass(frozen=True)
class Catalog:
    """Ids of the rows seeded by the catalog fixture."""

    view: int = 1
    edit: int = 2
    delete: int = 3
    print: int = 4
    download: int = 5
    admin_role: int = 1
    viewer_role: int = 2
    retired_role: int = 3
    north: int = 10
    south: int = 20
    east: int = 30
    clerk_title: int = 1


@pytest.fixture(autouse=True)
def _reset_actor_context() -> None:
    clear_current_user()


@pytest.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory database with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session_factory: async_sessionmaker[AsyncSession]) -> Catalog:
    """Commit permissions, roles, municipalities and a job title.

    admin_role grants view/edit/delete, viewer_role grants view,
    retired_role is inactive (grants edit). download is an inactive permission.
    """
    ids = Catalog()
    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    models.Permission(id=ids.view, name="view"),
                    models.Permission(id=ids.edit, name="edit"),
                    models.Permission(id=ids.delete, name="delete"),
                    models.Permission(id=ids.print, name="print"),
                    models.Permission(id=ids.download, name="download", active=False),
                    models.Role(id=ids.admin_role, name="administrador"),
                    models.Role(id=ids.viewer_role, name="consulta"),
                    models.Role(id=ids.retired_role, name="legacy", active=False),
                    models.Municipality(id=ids.north, num=2, name="Norte"),
                    models.Municipality(id=ids.south, num=1, name="Sur"),
                    models.Municipality(id=ids.east, num=3, name="Este"),
                    models.JobTitle(id=ids.clerk_title, name="Auxiliar"),
                ]
            )
            await session.flush()
            session.add_all(
                [
                    models.RolePermission(role_id=ids.admin_role, permission_id=ids.view),
                    models.RolePermission(role_id=ids.admin_role, permission_id=ids.edit),
                    models.RolePermission(role_id=ids.admin_role, permission_id=ids.delete),
                    models.RolePermission(role_id=ids.admin_role, permission_id=ids.download),
                    models.RolePermission(role_id=ids.viewer_role, permission_id=ids.view),
                    models.RolePermission(role_id=ids.retired_role, permission_id=ids.edit),
                ]
            )
    return ids


async def insert_user(
    session_factory: async_sessionmaker[AsyncSession], email: str = "ana@example.com"
) -> int:
    """Commit a bare user (no roles, no grants) and return its id."""
    async with session_factory() as session:
        async with session.begin():
            user = models.User(
                email=email,
                first_name="Ana",
                last_name="Pérez",
                hashed_password="x",
            )
            session.add(user)
            await session.flush()
            return user.id


@pytest.fixture
async def user_id(
    session_factory: async_sessionmaker[AsyncSession], catalog: Catalog
) -> int:
    return await insert_user(session_factory)


@pytest.fixture
def matrix_engine() -> AccessMatrixEngine:
    """Engine with the default role-expansion policy and no change listener."""
    return AccessMatrixEngine(sql_matrix_unit_of_work, PermissionExpander())


@pytest.fixture
def user_service(matrix_engine: AccessMatrixEngine) -> UserService:
    return UserService(sql_matrix_unit_of_work, matrix_engine)
