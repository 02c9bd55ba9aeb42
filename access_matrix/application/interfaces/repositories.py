"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill.
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from access_matrix.application.dtos.access_grant import (
        GrantPair,
        GrantResult,
        TerritoryAccess,
    )
    from access_matrix.application.dtos.catalog import PermissionResult
    from access_matrix.application.dtos.user import UserListQuery, UserResult


class IRoleCatalog(Protocol):
    """Role -> base permission associations (read-only for the engine)."""

    async def expand_roles_to_permissions(
        self, role_ids: list[int] | set[int], active_only: bool = True
    ) -> list[int]:
        """Return deduplicated permission ids granted by role_ids."""

    async def get_existing_ids(self, ids: set[int] | list[int]) -> set[int]:
        """Return the subset of role ids that exist."""

    async def get_role_names_for_user(self, user_id: int) -> list[str]:
        """Return names of the user's current roles."""


class IIdentityStore(Protocol):
    """User records: role links, active flag and row locking."""

    async def create_user(self, **fields: Any) -> Any:
        """Insert a user; raise UserAlreadyExistsException on duplicates."""

    async def get_user_result(self, user_id: int) -> UserResult | None:
        """Return the user read-model, or None."""

    async def update_profile(self, user: Any, fields: dict[str, Any]) -> Any:
        """Apply identity column changes to a locked user."""

    async def list_users(self, query: UserListQuery) -> tuple[list[UserResult], int]:
        """Return one page of users and the total count."""

    async def lock_for_update(self, user_id: int) -> Any:
        """Lock the user row for the current transaction; raise if missing."""

    async def set_user_roles(self, user_id: int, role_ids: list[int]) -> None:
        """Replace the user's role assignment."""

    async def get_user_roles(self, user_id: int) -> list[int]:
        """Return the user's current role ids."""

    async def set_user_active(self, user_id: int, active: bool) -> None:
        """Switch the user's active flag."""

    async def soft_delete_user_roles(self, user_id: int) -> int:
        """Soft-delete all current role links of the user."""


class ITerritoryCatalog(Protocol):
    """Municipality and permission catalog lookups."""

    async def get_existing_municipality_ids(self, ids: set[int] | list[int]) -> set[int]:
        """Return the subset of municipality ids that exist."""

    async def get_existing_permission_ids(self, ids: set[int] | list[int]) -> set[int]:
        """Return the subset of permission ids that exist."""

    async def get_existing_job_title_ids(self, ids: set[int] | list[int]) -> set[int]:
        """Return the subset of job title ids that exist."""

    async def get_permission_by_id(self, permission_id: int) -> PermissionResult | None:
        """Return a permission by id."""

    async def get_active_permission_by_name(self, name: str) -> PermissionResult | None:
        """Return the active permission with this name."""

    async def municipality_names(self, ids: set[int] | list[int]) -> dict[int, str]:
        """Map municipality ids to names."""

    async def permission_names(self, ids: set[int] | list[int]) -> dict[int, str]:
        """Map permission ids to names."""


class IAccessGrantStore(Protocol):
    """Grant table writes and reads, scoped per user."""

    async def list_for_user(
        self, user_id: int, *, include_inactive: bool = False
    ) -> list[GrantResult]:
        """Return the user's grants."""

    async def get(
        self, user_id: int, municipality_id: int, permission_id: int
    ) -> GrantResult | None:
        """Return one grant row."""

    async def get_active_pairs(self, user_id: int) -> set[GrantPair]:
        """Return active (municipality, permission) pairs."""

    async def get_derived_municipality_ids(self, user_id: int) -> set[int]:
        """Return municipalities with at least one active derived grant."""

    async def upsert_derived(self, user_id: int, pairs: Sequence[GrantPair]) -> None:
        """Insert or re-activate derived grants."""

    async def upsert_exceptions(self, user_id: int, pairs: Sequence[GrantPair]) -> None:
        """Insert or convert rows into active exception grants."""

    async def revoke_derived(self, user_id: int) -> int:
        """Revoke active derived grants."""

    async def revoke_pairs(self, user_id: int, pairs: Sequence[GrantPair]) -> int:
        """Revoke the given cells."""

    async def revoke_all(self, user_id: int) -> int:
        """Revoke every active grant."""

    async def has_permission(
        self, user_id: int, municipality_id: int, permission_name: str
    ) -> bool:
        """Return True if the user holds the named permission in the municipality."""

    async def territory_access(self, user_id: int) -> list[TerritoryAccess]:
        """Return active permission names grouped by municipality."""


@dataclass(frozen=True)
class MatrixRepositories:
    """Ports bound to one open transaction.

    after_commit registers a callback that runs once the transaction commits
    and is dropped if it rolls back.
    """

    roles: IRoleCatalog
    identity: IIdentityStore
    catalog: ITerritoryCatalog
    grants: IAccessGrantStore
    after_commit: Callable[[Callable[[], None]], None]


# Opens (or joins) a transaction on a database handle and yields its ports.
MatrixUnitOfWork = Callable[[Any], AbstractAsyncContextManager[MatrixRepositories]]
