"""Unit tests for AccessMatrixEngine orchestration with mocked ports."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from access_matrix.application.dtos.access_grant import GrantChange
from access_matrix.application.interfaces.repositories import MatrixRepositories
from access_matrix.application.services.access_matrix_engine import AccessMatrixEngine
from access_matrix.application.services.provisioning_policy import PermissionExpander
from access_matrix.domain.exceptions import ResourceNotFoundException
from access_matrix.shared.context import set_current_user
from access_matrix.shared.enums import AuditAction


def _repositories(active_before, active_after, callbacks):
    roles = MagicMock()
    roles.get_existing_ids = AsyncMock(side_effect=lambda ids: set(ids))
    roles.expand_roles_to_permissions = AsyncMock(return_value=[1, 2])
    identity = MagicMock()
    identity.lock_for_update = AsyncMock()
    identity.set_user_roles = AsyncMock()
    identity.get_user_roles = AsyncMock(return_value=[1])
    catalog = MagicMock()
    catalog.get_existing_municipality_ids = AsyncMock(side_effect=lambda ids: set(ids))
    catalog.get_existing_permission_ids = AsyncMock(side_effect=lambda ids: set(ids))
    grants = MagicMock()
    grants.get_active_pairs = AsyncMock(side_effect=[active_before, active_after])
    grants.get_derived_municipality_ids = AsyncMock(return_value={10})
    grants.list_for_user = AsyncMock(return_value=[])
    grants.upsert_derived = AsyncMock()
    grants.upsert_exceptions = AsyncMock()
    grants.revoke_derived = AsyncMock(return_value=0)
    grants.revoke_pairs = AsyncMock(return_value=1)
    grants.revoke_all = AsyncMock(return_value=0)
    return MatrixRepositories(
        roles=roles,
        identity=identity,
        catalog=catalog,
        grants=grants,
        after_commit=callbacks.append,
    )


def _engine(repos, listener=None) -> AccessMatrixEngine:
    @asynccontextmanager
    async def uow(db):
        yield repos

    return AccessMatrixEngine(uow, PermissionExpander(), listener)


async def test_provision_upserts_cross_product_and_queues_change() -> None:
    callbacks: list = []
    repos = _repositories(set(), {(10, 1), (10, 2), (20, 1), (20, 2)}, callbacks)
    listener = MagicMock()
    set_current_user(9, ip_address="10.1.1.1")

    await _engine(repos, listener).provision_for_new_user(object(), 5, [1], [20, 10])

    repos.identity.lock_for_update.assert_awaited_once_with(5)
    repos.identity.set_user_roles.assert_awaited_once_with(5, [1])
    repos.grants.revoke_derived.assert_awaited_once_with(5)
    repos.grants.upsert_derived.assert_awaited_once_with(
        5, [(10, 1), (10, 2), (20, 1), (20, 2)]
    )
    # Nothing is reported until the transaction commits.
    listener.on_matrix_changed.assert_not_called()
    assert len(callbacks) == 1
    callbacks[0]()
    change = listener.on_matrix_changed.call_args.args[0]
    assert change.action == AuditAction.PROVISION
    assert change.added == frozenset({(10, 1), (10, 2), (20, 1), (20, 2)})
    assert change.removed == frozenset()
    assert change.municipality_ids == frozenset({10, 20})
    assert change.actor_id == 9
    assert change.ip_address == "10.1.1.1"


async def test_resync_omitted_municipalities_targets_derived_ones() -> None:
    repos = _repositories({(10, 1)}, {(10, 1), (10, 2)}, [])
    await _engine(repos).resync_for_updated_user(object(), 5)

    repos.identity.set_user_roles.assert_not_called()
    repos.identity.get_user_roles.assert_awaited_once_with(5)
    repos.grants.revoke_derived.assert_awaited_once_with(5)
    repos.grants.upsert_derived.assert_awaited_once_with(5, [(10, 1), (10, 2)])
    repos.grants.revoke_all.assert_not_called()


async def test_resync_explicit_empty_municipalities_revokes_all() -> None:
    repos = _repositories({(10, 1)}, set(), [])
    await _engine(repos).resync_for_updated_user(object(), 5, municipality_ids=[])

    repos.grants.revoke_derived.assert_awaited_once_with(5)
    repos.grants.revoke_all.assert_awaited_once_with(5)
    repos.grants.upsert_derived.assert_not_called()


async def test_apply_batch_issues_one_revoke_and_one_upsert() -> None:
    repos = _repositories({(10, 1)}, {(20, 4)}, [])
    await _engine(repos).apply_batch(
        object(),
        5,
        [
            GrantChange(20, 4, grant=False),
            GrantChange(10, 1, grant=False),
            GrantChange(20, 4, grant=True),
        ],
    )
    repos.grants.revoke_pairs.assert_awaited_once_with(5, [(10, 1)])
    repos.grants.upsert_exceptions.assert_awaited_once_with(5, [(20, 4)])


async def test_unknown_municipality_stops_before_any_write() -> None:
    repos = _repositories(set(), set(), [])
    repos.catalog.get_existing_municipality_ids = AsyncMock(return_value={10})
    with pytest.raises(ResourceNotFoundException) as exc_info:
        await _engine(repos).provision_for_new_user(object(), 5, [1], [10, 11])
    assert exc_info.value.details["resource_id"] == [11]
    repos.identity.set_user_roles.assert_not_called()
    repos.grants.upsert_derived.assert_not_called()
