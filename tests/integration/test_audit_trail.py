"""Committed matrix changes reach audit_log with readable names; rolled-back ones do not."""

import pytest
from sqlalchemy import select

from access_matrix.application.dtos.access_grant import GrantChange
from access_matrix.core.config import Settings
from access_matrix.dependencies import build_services
from access_matrix.domain.exceptions import ResourceNotFoundException
from access_matrix.infrastructure.persistence.models import AuditLog
from access_matrix.infrastructure.persistence.repositories import AuditLogRepository
from access_matrix.shared.context import set_current_user


@pytest.fixture
def services(session_factory):
    settings = Settings(database_url="sqlite+aiosqlite://", audit_default_module="USERS")
    return build_services(settings, session_factory)


async def _audit_rows(session_factory) -> list[AuditLog]:
    async with session_factory() as session:
        result = await session.execute(select(AuditLog).order_by(AuditLog.created_at))
        return list(result.scalars().all())


async def test_provision_is_audited_with_names(
    services, session_factory, db_session, catalog, user_id
) -> None:
    set_current_user(user_id, ip_address="10.0.0.7", user_agent="pytest")
    await services.engine.provision_for_new_user(
        db_session, user_id, [catalog.viewer_role], [catalog.north, catalog.south]
    )
    await services.audit_writer.drain()

    rows = await _audit_rows(session_factory)
    assert len(rows) == 1
    row = rows[0]
    assert row.action == "PROVISION"
    assert row.module == "USERS"
    assert row.entity_id == str(user_id)
    assert row.user_id == user_id
    assert row.ip_address == "10.0.0.7"
    assert row.user_agent == "pytest"
    assert row.details["removed"] == []
    assert {(a["municipality"], a["permission"]) for a in row.details["added"]} == {
        ("Norte", "view"),
        ("Sur", "view"),
    }
    assert sorted(row.details["municipalities"]) == ["Norte", "Sur"]


async def test_exception_audit_lists_the_changed_cell(
    services, session_factory, db_session, catalog, user_id
) -> None:
    await services.engine.provision_for_new_user(
        db_session, user_id, [catalog.viewer_role], [catalog.north]
    )
    await services.audit_writer.drain()
    await services.engine.set_exception(
        db_session, user_id, catalog.north, catalog.print, True
    )
    await services.audit_writer.drain()
    await services.engine.set_exception(
        db_session, user_id, catalog.north, catalog.view, False
    )
    await services.audit_writer.drain()

    rows = await _audit_rows(session_factory)
    by_action = {row.action: row for row in rows}
    assert set(by_action) == {"PROVISION", "GRANT_EXCEPTION", "REVOKE_EXCEPTION"}
    granted = by_action["GRANT_EXCEPTION"].details["added"]
    assert [(c["municipality"], c["permission"]) for c in granted] == [("Norte", "print")]
    removed = by_action["REVOKE_EXCEPTION"].details["removed"]
    assert [(c["municipality"], c["permission"]) for c in removed] == [("Norte", "view")]
    # No request context: system action.
    assert by_action["GRANT_EXCEPTION"].user_id is None


async def test_failed_operation_is_not_audited(
    services, session_factory, db_session, catalog, user_id
) -> None:
    with pytest.raises(ResourceNotFoundException):
        await services.engine.apply_batch(
            db_session,
            user_id,
            [
                GrantChange(catalog.north, catalog.print, grant=True),
                GrantChange(404, catalog.print, grant=True),
            ],
        )
    await services.audit_writer.drain()
    assert await _audit_rows(session_factory) == []


async def test_audit_disabled_builds_engine_without_listener(session_factory) -> None:
    settings = Settings(database_url="sqlite+aiosqlite://", audit_enabled=False)
    services = build_services(settings, session_factory)
    assert services.audit_writer is None


async def test_audit_log_repository_filters(
    services, session_factory, db_session, catalog, user_id
) -> None:
    services.audit_writer.record_action(
        user_id, "CREATE", "ROLES", catalog.admin_role, {"name": "administrador"}
    )
    await services.audit_writer.drain()
    await services.engine.revoke_all_for_user(db_session, user_id)
    await services.audit_writer.drain()

    async with session_factory() as session:
        repo = AuditLogRepository(session)
        matrix = await repo.list(module="USERS", entity_id=str(user_id))
        roles = await repo.list(module="ROLES")
    assert [entry.action for entry in matrix] == ["REVOKE_ALL"]
    assert [entry.details for entry in roles] == [{"name": "administrador"}]
    assert roles[0].id
    assert roles[0].created_at.tzinfo is not None
