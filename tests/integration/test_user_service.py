"""User service against SQLite: identity writes and matrix provisioning in one transaction."""

import pytest
from sqlalchemy import func, select

from access_matrix.application.dtos.user import UserCreate, UserListQuery, UserUpdate
from access_matrix.domain.exceptions import (
    ResourceNotFoundException,
    UserAlreadyExistsException,
    ValidationException,
)
from access_matrix.infrastructure.persistence.models import User
from access_matrix.shared.context import set_current_user


def _new_user(catalog, **overrides) -> UserCreate:
    data = {
        "email": "luis@example.com",
        "username": "luis",
        "first_name": "Luis",
        "last_name": "Gómez",
        "hashed_password": "hashed",
        "municipality_ids": [catalog.north, catalog.south],
        "role_ids": [catalog.admin_role],
        "job_title_id": catalog.clerk_title,
    }
    data.update(overrides)
    return UserCreate(**data)


async def _user_count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(User))).scalar_one()


async def test_create_user_provisions_grants(
    user_service, db_session, catalog, user_id
) -> None:
    set_current_user(user_id)
    detail = await user_service.create_user(db_session, _new_user(catalog))

    assert detail.user.email == "luis@example.com"
    assert detail.user.created_by == user_id
    assert detail.user.updated_by == user_id
    assert detail.user.job_title_id == catalog.clerk_title
    assert detail.roles == ["administrador"]
    assert len(detail.grants) == 6


async def test_create_user_requires_a_territory(
    user_service, db_session, session_factory, catalog
) -> None:
    with pytest.raises(ValidationException):
        await user_service.create_user(db_session, _new_user(catalog, municipality_ids=[]))
    assert await _user_count(session_factory) == 0


async def test_create_user_rolls_back_identity_when_provisioning_fails(
    user_service, db_session, session_factory, catalog
) -> None:
    with pytest.raises(ResourceNotFoundException):
        await user_service.create_user(
            db_session, _new_user(catalog, municipality_ids=[catalog.north, 321])
        )
    assert await _user_count(session_factory) == 0


async def test_create_user_duplicate_email(
    user_service, db_session, catalog, user_id
) -> None:
    with pytest.raises(UserAlreadyExistsException) as exc_info:
        await user_service.create_user(
            db_session, _new_user(catalog, email="ana@example.com", username=None)
        )
    assert exc_info.value.error_code == "USER_ALREADY_EXISTS"


async def test_create_user_unknown_job_title(user_service, db_session, catalog) -> None:
    with pytest.raises(ResourceNotFoundException) as exc_info:
        await user_service.create_user(db_session, _new_user(catalog, job_title_id=88))
    assert exc_info.value.details["resource_type"] == "job_title"


async def test_update_profile_only_does_not_touch_grants(
    user_service, db_session, catalog
) -> None:
    created = await user_service.create_user(db_session, _new_user(catalog))
    detail = await user_service.update_user(
        db_session, created.user.id, UserUpdate(phone="555-0100")
    )
    assert detail.user.phone == "555-0100"
    assert {g.pair for g in detail.grants} == {g.pair for g in created.grants}


async def test_update_roles_resyncs_matrix(user_service, db_session, catalog) -> None:
    created = await user_service.create_user(db_session, _new_user(catalog))
    detail = await user_service.update_user(
        db_session, created.user.id, UserUpdate(role_ids=[catalog.viewer_role])
    )
    assert detail.roles == ["consulta"]
    assert {g.pair for g in detail.grants} == {
        (catalog.north, catalog.view),
        (catalog.south, catalog.view),
    }


async def test_update_email_collision(user_service, db_session, catalog, user_id) -> None:
    created = await user_service.create_user(db_session, _new_user(catalog))
    with pytest.raises(UserAlreadyExistsException):
        await user_service.update_user(
            db_session, created.user.id, UserUpdate(email="ana@example.com")
        )


async def test_deactivate_user(user_service, db_session, catalog) -> None:
    created = await user_service.create_user(db_session, _new_user(catalog))
    revoked = await user_service.deactivate_user(db_session, created.user.id)
    assert revoked == 6

    detail = await user_service.get_user(db_session, created.user.id)
    assert detail.user.active is False
    assert detail.user.deleted_at is not None
    assert detail.roles == []
    assert detail.grants == []


async def test_get_user_not_found(user_service, db_session, catalog) -> None:
    with pytest.raises(ResourceNotFoundException):
        await user_service.get_user(db_session, 12345)


async def test_list_users_filters_and_paginates(
    user_service, db_session, catalog, user_id
) -> None:
    await user_service.create_user(db_session, _new_user(catalog))
    await user_service.create_user(
        db_session,
        _new_user(
            catalog,
            email="marta@example.com",
            username="marta",
            first_name="Marta",
            role_ids=[catalog.viewer_role],
        ),
    )

    page = await user_service.list_users(db_session, UserListQuery(page=1, limit=2))
    assert page.count == 3
    assert page.total_pages == 2
    assert len(page.rows) == 2

    found = await user_service.list_users(db_session, UserListQuery(search="MART"))
    assert [u.email for u in found.rows] == ["marta@example.com"]

    admins = await user_service.list_users(
        db_session, UserListQuery(role_id=catalog.admin_role)
    )
    assert [u.email for u in admins.rows] == ["luis@example.com"]
