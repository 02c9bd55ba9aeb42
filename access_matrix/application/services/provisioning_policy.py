"""Provisioning policy: which permissions a user receives by default per territory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from access_matrix.domain.enums import ProvisioningPolicy
from access_matrix.domain.exceptions import ResourceNotFoundException, ValidationException
from access_matrix.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from access_matrix.application.interfaces.repositories import (
        IRoleCatalog,
        ITerritoryCatalog,
    )
    from access_matrix.core.config import Settings

logger = get_logger(__name__)


class PermissionExpander:
    """Resolves the base permission set for derived grants.

    ROLE_EXPANSION: every active permission of every active role.
    VIEW_ONLY: the active permission named view_permission_name, falling back
    to fallback_permission_id when no such permission exists.
    """

    def __init__(
        self,
        default_policy: ProvisioningPolicy = ProvisioningPolicy.ROLE_EXPANSION,
        view_permission_name: str = "view",
        fallback_permission_id: int = 1,
    ) -> None:
        self.default_policy = default_policy
        self.view_permission_name = view_permission_name
        self.fallback_permission_id = fallback_permission_id

    @classmethod
    def from_settings(cls, settings: Settings) -> PermissionExpander:
        return cls(
            default_policy=settings.provisioning_policy,
            view_permission_name=settings.view_permission_name,
            fallback_permission_id=settings.fallback_permission_id,
        )

    async def resolve(
        self,
        role_catalog: IRoleCatalog,
        territory_catalog: ITerritoryCatalog,
        role_ids: list[int],
        policy: ProvisioningPolicy | None = None,
    ) -> list[int]:
        """Return the sorted permission ids to grant in every target municipality."""
        effective = policy or self.default_policy
        if effective == ProvisioningPolicy.ROLE_EXPANSION:
            return await role_catalog.expand_roles_to_permissions(role_ids, active_only=True)
        if effective == ProvisioningPolicy.VIEW_ONLY:
            return [await self._view_permission_id(territory_catalog)]
        raise ValidationException(f"Unknown provisioning policy: {effective}", field="policy")

    async def _view_permission_id(self, territory_catalog: ITerritoryCatalog) -> int:
        view = await territory_catalog.get_active_permission_by_name(self.view_permission_name)
        if view is not None:
            return view.id
        fallback = await territory_catalog.get_permission_by_id(self.fallback_permission_id)
        if fallback is None:
            raise ResourceNotFoundException("permission", self.view_permission_name)
        logger.warning(
            "No active permission named %r; using fallback permission id %s",
            self.view_permission_name,
            self.fallback_permission_id,
        )
        return fallback.id
