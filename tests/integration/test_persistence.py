"""unit_of_work error mapping, post-commit callbacks, catalog repositories and seeding."""

import pytest
from sqlalchemy import select, text

from access_matrix.domain.exceptions import (
    ConflictException,
    ResourceNotFoundException,
    StorageException,
    ValidationException,
)
from access_matrix.infrastructure.persistence import database
from access_matrix.infrastructure.persistence.database import run_after_commit, unit_of_work
from access_matrix.infrastructure.persistence.models import Permission, UserRole
from access_matrix.infrastructure.persistence.repositories import (
    CatalogRepository,
    IdentityRepository,
    RoleCatalogRepository,
)
from access_matrix.infrastructure.persistence.seed import (
    DEFAULT_JOB_TITLES,
    DEFAULT_PERMISSIONS,
    DEFAULT_ROLES,
    seed_catalogs,
)


async def test_integrity_error_becomes_conflict(db_session, catalog) -> None:
    with pytest.raises(ConflictException) as exc_info:
        async with unit_of_work(db_session):
            db_session.add(Permission(name="view"))
            await db_session.flush()
    assert exc_info.value.error_code == "CONFLICT"
    assert isinstance(exc_info.value.__cause__, Exception)


async def test_sqlalchemy_error_becomes_storage_exception(db_session) -> None:
    with pytest.raises(StorageException) as exc_info:
        async with unit_of_work(db_session):
            await db_session.execute(text("SELECT * FROM no_such_table"))
    assert exc_info.value.error_code == "STORAGE_ERROR"
    assert "no_such_table" in exc_info.value.details["reason"]


async def test_domain_exception_passes_through_and_rolls_back(db_session, catalog) -> None:
    with pytest.raises(ValidationException):
        async with unit_of_work(db_session):
            db_session.add(Permission(name="archive"))
            await db_session.flush()
            raise ValidationException("nope")
    result = await db_session.execute(select(Permission).where(Permission.name == "archive"))
    assert result.scalar_one_or_none() is None


async def test_post_commit_callbacks_run_only_on_commit(db_session) -> None:
    fired: list[str] = []
    async with unit_of_work(db_session):
        run_after_commit(db_session, lambda: fired.append("committed"))
    assert fired == ["committed"]

    with pytest.raises(ValidationException):
        async with unit_of_work(db_session):
            run_after_commit(db_session, lambda: fired.append("rolled back"))
            raise ValidationException("abort")
    assert fired == ["committed"]


async def test_failing_callback_does_not_break_commit(db_session, catalog) -> None:
    def boom() -> None:
        raise RuntimeError("listener bug")

    async with unit_of_work(db_session):
        db_session.add(Permission(name="archive"))
        run_after_commit(db_session, boom)
    result = await db_session.execute(select(Permission).where(Permission.name == "archive"))
    assert result.scalar_one() is not None


async def test_expand_roles_to_permissions(db_session, catalog) -> None:
    roles = RoleCatalogRepository(db_session)
    expanded = await roles.expand_roles_to_permissions(
        [catalog.admin_role, catalog.viewer_role, catalog.retired_role]
    )
    assert expanded == [catalog.view, catalog.edit, catalog.delete]
    everything = await roles.expand_roles_to_permissions(
        [catalog.admin_role, catalog.retired_role], active_only=False
    )
    assert everything == [catalog.view, catalog.edit, catalog.delete, catalog.download]
    assert await roles.expand_roles_to_permissions([]) == []


async def test_create_role_conflict_and_unknown_permission(db_session, catalog) -> None:
    roles = RoleCatalogRepository(db_session)
    with pytest.raises(ConflictException):
        await roles.create_role("administrador")
    with pytest.raises(ResourceNotFoundException):
        await roles.create_role("auditor", permission_ids=[catalog.view, 99])


async def test_set_user_roles_soft_deletes_and_reactivates(
    db_session, catalog, user_id
) -> None:
    identity = IdentityRepository(db_session)
    await identity.set_user_roles(user_id, [catalog.admin_role, catalog.viewer_role])
    await identity.set_user_roles(user_id, [catalog.viewer_role])
    assert await identity.get_user_roles(user_id) == [catalog.viewer_role]

    await identity.set_user_roles(user_id, [catalog.admin_role])
    assert await identity.get_user_roles(user_id) == [catalog.admin_role]
    links = await db_session.execute(select(UserRole).where(UserRole.user_id == user_id))
    assert len(links.scalars().all()) == 2


async def test_catalog_lists(db_session, catalog) -> None:
    territories = CatalogRepository(db_session)
    municipalities = await territories.list_municipalities()
    assert [m.num for m in municipalities] == [1, 2, 3]
    permissions = await territories.list_permissions()
    assert "download" not in {p.name for p in permissions}
    assert len(await territories.list_permissions(include_inactive=True)) == 5
    assert await territories.get_active_permission_by_name("download") is None
    assert await territories.municipality_names([catalog.north]) == {catalog.north: "Norte"}


async def test_seed_catalogs_is_idempotent(db_session) -> None:
    async with db_session.begin():
        first = await seed_catalogs(db_session)
    assert first == {
        "permissions": len(DEFAULT_PERMISSIONS),
        "roles": len(DEFAULT_ROLES),
        "job_titles": len(DEFAULT_JOB_TITLES),
    }
    async with db_session.begin():
        second = await seed_catalogs(db_session)
    assert second == {"permissions": 0, "roles": 0, "job_titles": 0}

    roles = RoleCatalogRepository(db_session)
    admin = await roles.get_by_name("administrador")
    assert admin is not None
    assert len(await roles.expand_roles_to_permissions([admin.id])) == 5


def test_session_factory_requires_initialized_engine(monkeypatch) -> None:
    monkeypatch.setattr(database, "_ensure_engine", lambda: None)
    monkeypatch.setattr(database, "AsyncSessionLocal", None)
    with pytest.raises(StorageException):
        database.get_session_factory()
