"""Access matrix engine: provisioning, resync, exceptions and cascading revoke.

The engine is the only writer of user grants. Each operation runs as one
unit of work on the caller's database handle: it opens a transaction when
none is active, or joins the caller's transaction otherwise. The user row is
locked first so concurrent operations on the same user serialize.

Committed mutations are reported to the change listener (the audit trail)
after commit; a rolled-back operation reports nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from functools import partial
from typing import TYPE_CHECKING, Any

from access_matrix.application.dtos.access_grant import (
    GrantChange,
    GrantPair,
    GrantResult,
    MatrixChange,
    TerritoryAccess,
)
from access_matrix.domain.exceptions import ResourceNotFoundException, ValidationException
from access_matrix.shared.context import get_actor_context
from access_matrix.shared.enums import AuditAction
from access_matrix.shared.telemetry.logging import get_logger
from access_matrix.shared.telemetry.tracing import add_span_attributes, traced

if TYPE_CHECKING:
    from access_matrix.application.interfaces.repositories import (
        MatrixRepositories,
        MatrixUnitOfWork,
    )
    from access_matrix.application.interfaces.services import IMatrixChangeListener
    from access_matrix.application.services.provisioning_policy import PermissionExpander
    from access_matrix.domain.enums import ProvisioningPolicy

logger = get_logger(__name__)


def cross_product(
    municipality_ids: Iterable[int], permission_ids: Iterable[int]
) -> list[GrantPair]:
    """Every (municipality, permission) cell, sorted."""
    permissions = sorted(set(permission_ids))
    return [(m, p) for m in sorted(set(municipality_ids)) for p in permissions]


def _require_all(resource_type: str, wanted: Iterable[int], found: set[int]) -> None:
    missing = set(wanted) - found
    if missing:
        raise ResourceNotFoundException(resource_type, sorted(missing))


class AccessMatrixEngine:
    """Maintains the (user, municipality, permission) grant matrix."""

    def __init__(
        self,
        unit_of_work: MatrixUnitOfWork,
        expander: PermissionExpander,
        listener: IMatrixChangeListener | None = None,
    ) -> None:
        self._uow = unit_of_work
        self._expander = expander
        self._listener = listener

    # -- mutations -----------------------------------------------------------

    @traced("access_matrix.provision_for_new_user")
    async def provision_for_new_user(
        self,
        db: Any,
        user_id: int,
        role_ids: Sequence[int],
        municipality_ids: Sequence[int],
        *,
        policy: ProvisioningPolicy | None = None,
    ) -> list[GrantResult]:
        """Assign roles and derive the initial grants of a freshly created user.

        Provisioning an existing user replaces its derived grants; exceptions are kept.

        Raises:
            ValidationException: If municipality_ids is empty.
            ResourceNotFoundException: If the user, a role or a municipality does not exist.
        """
        if not municipality_ids:
            raise ValidationException(
                "At least one territory is required", field="municipality_ids"
            )
        async with self._uow(db) as repos:
            await repos.identity.lock_for_update(user_id)
            await self._require_roles(repos, role_ids)
            await self._require_municipalities(repos, municipality_ids)
            before = await repos.grants.get_active_pairs(user_id)

            await repos.identity.set_user_roles(user_id, list(role_ids))
            permission_ids = await self._expander.resolve(
                repos.roles, repos.catalog, list(role_ids), policy
            )
            pairs = cross_product(municipality_ids, permission_ids)
            await repos.grants.revoke_derived(user_id)
            await repos.grants.upsert_derived(user_id, pairs)
            add_span_attributes(derived_grants=len(pairs))
            logger.info(
                "Provisioned user %s: %s derived grants over %s municipalities",
                user_id,
                len(pairs),
                len(set(municipality_ids)),
            )
            return await self._finish(
                repos, user_id, AuditAction.PROVISION, before, municipality_ids
            )

    @traced("access_matrix.resync_for_updated_user")
    async def resync_for_updated_user(
        self,
        db: Any,
        user_id: int,
        role_ids: Sequence[int] | None = None,
        municipality_ids: Sequence[int] | None = None,
        *,
        policy: ProvisioningPolicy | None = None,
    ) -> list[GrantResult]:
        """Recompute derived grants after a role or territory change.

        None leaves roles or territories unchanged; an explicit empty list is
        honored. With municipality_ids omitted the target territories are the
        ones currently holding derived grants. An explicit empty territory list
        revokes every grant of the user, exceptions included. Active
        exceptions survive every other resync.

        Raises:
            ResourceNotFoundException: If the user, a role or a municipality does not exist.
        """
        async with self._uow(db) as repos:
            await repos.identity.lock_for_update(user_id)
            if role_ids is not None:
                await self._require_roles(repos, role_ids)
            if municipality_ids is not None:
                await self._require_municipalities(repos, municipality_ids)
                targets = set(municipality_ids)
            else:
                targets = await repos.grants.get_derived_municipality_ids(user_id)
            before = await repos.grants.get_active_pairs(user_id)

            if role_ids is not None:
                await repos.identity.set_user_roles(user_id, list(role_ids))
                effective_roles = list(role_ids)
            else:
                effective_roles = await repos.identity.get_user_roles(user_id)

            await repos.grants.revoke_derived(user_id)
            if targets:
                permission_ids = await self._expander.resolve(
                    repos.roles, repos.catalog, effective_roles, policy
                )
                await repos.grants.upsert_derived(
                    user_id, cross_product(targets, permission_ids)
                )
            elif municipality_ids is not None:
                revoked = await repos.grants.revoke_all(user_id)
                logger.info(
                    "Empty territory list for user %s: revoked %s remaining grants",
                    user_id,
                    revoked,
                )
            return await self._finish(repos, user_id, AuditAction.RESYNC, before, targets)

    @traced("access_matrix.set_exception")
    async def set_exception(
        self,
        db: Any,
        user_id: int,
        municipality_id: int,
        permission_id: int,
        grant: bool,
    ) -> GrantResult | None:
        """Grant (as an exception) or revoke one matrix cell.

        Granting is idempotent and converts a derived row into an exception.
        Revoking deactivates the row whatever its provenance. Returns the
        resulting row, or None if the cell never existed.

        Raises:
            ResourceNotFoundException: If the user, municipality or permission does not exist.
        """
        async with self._uow(db) as repos:
            await repos.identity.lock_for_update(user_id)
            await self._require_municipalities(repos, [municipality_id])
            await self._require_permissions(repos, [permission_id])
            before = await repos.grants.get_active_pairs(user_id)

            pair = (municipality_id, permission_id)
            if grant:
                await repos.grants.upsert_exceptions(user_id, [pair])
                action = AuditAction.GRANT_EXCEPTION
            else:
                await repos.grants.revoke_pairs(user_id, [pair])
                action = AuditAction.REVOKE_EXCEPTION
            await self._finish(repos, user_id, action, before, [municipality_id])
            return await repos.grants.get(user_id, municipality_id, permission_id)

    @traced("access_matrix.apply_batch")
    async def apply_batch(
        self, db: Any, user_id: int, changes: Sequence[GrantChange]
    ) -> list[GrantResult]:
        """Apply many exception grants and revocations atomically.

        When the same cell appears more than once the last change wins.

        Raises:
            ResourceNotFoundException: If the user, a municipality or a permission does not exist.
        """
        desired: dict[GrantPair, bool] = {}
        for change in changes:
            desired[(change.municipality_id, change.permission_id)] = change.grant

        async with self._uow(db) as repos:
            await repos.identity.lock_for_update(user_id)
            if not desired:
                return await repos.grants.list_for_user(user_id)
            await self._require_municipalities(repos, {m for m, _ in desired})
            await self._require_permissions(repos, {p for _, p in desired})
            before = await repos.grants.get_active_pairs(user_id)

            to_revoke = sorted(pair for pair, grant in desired.items() if not grant)
            to_grant = sorted(pair for pair, grant in desired.items() if grant)
            if to_revoke:
                await repos.grants.revoke_pairs(user_id, to_revoke)
            if to_grant:
                await repos.grants.upsert_exceptions(user_id, to_grant)
            add_span_attributes(granted=len(to_grant), revoked=len(to_revoke))
            return await self._finish(
                repos,
                user_id,
                AuditAction.BATCH_UPDATE,
                before,
                {m for m, _ in desired},
            )

    @traced("access_matrix.revoke_all_for_user")
    async def revoke_all_for_user(self, db: Any, user_id: int) -> int:
        """Deactivate the user, drop their role links and revoke every grant.

        Returns the number of grants revoked.

        Raises:
            ResourceNotFoundException: If the user does not exist.
        """
        async with self._uow(db) as repos:
            await repos.identity.lock_for_update(user_id)
            before = await repos.grants.get_active_pairs(user_id)

            await repos.identity.set_user_active(user_id, False)
            await repos.identity.soft_delete_user_roles(user_id)
            revoked = await repos.grants.revoke_all(user_id)
            logger.info("Revoked all access of user %s (%s grants)", user_id, revoked)
            await self._finish(
                repos, user_id, AuditAction.REVOKE_ALL, before, {m for m, _ in before}
            )
            return revoked

    # -- read views ----------------------------------------------------------

    async def get_user_grants(
        self, db: Any, user_id: int, *, include_inactive: bool = False
    ) -> list[GrantResult]:
        async with self._uow(db) as repos:
            return await repos.grants.list_for_user(
                user_id, include_inactive=include_inactive
            )

    async def get_access_territories(self, db: Any, user_id: int) -> list[TerritoryAccess]:
        """Active permission names per municipality, ordered by municipality number."""
        async with self._uow(db) as repos:
            return await repos.grants.territory_access(user_id)

    async def has_permission(
        self, db: Any, user_id: int, municipality_id: int, permission_name: str
    ) -> bool:
        """True if the user holds the active, named permission in the municipality."""
        async with self._uow(db) as repos:
            return await repos.grants.has_permission(
                user_id, municipality_id, permission_name
            )

    # -- helpers -------------------------------------------------------------

    async def _require_roles(self, repos: MatrixRepositories, role_ids: Iterable[int]) -> None:
        wanted = set(role_ids)
        if wanted:
            _require_all("role", wanted, await repos.roles.get_existing_ids(wanted))

    async def _require_municipalities(
        self, repos: MatrixRepositories, municipality_ids: Iterable[int]
    ) -> None:
        wanted = set(municipality_ids)
        _require_all(
            "municipality",
            wanted,
            await repos.catalog.get_existing_municipality_ids(wanted),
        )

    async def _require_permissions(
        self, repos: MatrixRepositories, permission_ids: Iterable[int]
    ) -> None:
        wanted = set(permission_ids)
        _require_all(
            "permission", wanted, await repos.catalog.get_existing_permission_ids(wanted)
        )

    async def _finish(
        self,
        repos: MatrixRepositories,
        user_id: int,
        action: AuditAction,
        before: set[GrantPair],
        municipality_ids: Iterable[int],
    ) -> list[GrantResult]:
        """Queue the change report for after commit and return the active grants."""
        after = await repos.grants.get_active_pairs(user_id)
        if self._listener is not None:
            actor = get_actor_context()
            change = MatrixChange(
                user_id=user_id,
                action=action,
                added=frozenset(after - before),
                removed=frozenset(before - after),
                municipality_ids=frozenset(municipality_ids),
                actor_id=actor.user_id,
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
            )
            repos.after_commit(partial(self._listener.on_matrix_changed, change))
        return await repos.grants.list_for_user(user_id)
