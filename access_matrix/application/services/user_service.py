"""User management service: identity changes kept in step with the access matrix."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from access_matrix.application.dtos.user import (
    UserCreate,
    UserDetail,
    UserListQuery,
    UserPage,
    UserResult,
    UserUpdate,
)
from access_matrix.domain.exceptions import ResourceNotFoundException, ValidationException
from access_matrix.shared.telemetry.logging import get_logger
from access_matrix.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from access_matrix.application.interfaces.repositories import MatrixUnitOfWork
    from access_matrix.application.services.access_matrix_engine import AccessMatrixEngine

logger = get_logger(__name__)


class UserService:
    """Create, update, deactivate and read users.

    Identity writes and the matching matrix operation share one transaction:
    a user is never left without the grants their roles imply.
    """

    def __init__(self, unit_of_work: MatrixUnitOfWork, engine: AccessMatrixEngine) -> None:
        self._uow = unit_of_work
        self._engine = engine

    @traced("users.create_user")
    async def create_user(self, db: Any, data: UserCreate) -> UserDetail:
        """Create a user and provision their grants.

        Raises:
            ValidationException: If no municipality was given (before any write).
            UserAlreadyExistsException: If email or username is taken.
            ResourceNotFoundException: If a role, municipality or job title does not exist.
        """
        if not data.municipality_ids:
            raise ValidationException(
                "At least one territory is required", field="municipality_ids"
            )
        async with self._uow(db) as repos:
            if data.job_title_id is not None:
                await self._require_job_title(repos, data.job_title_id)
            user = await repos.identity.create_user(
                email=data.email,
                username=data.username,
                first_name=data.first_name,
                last_name=data.last_name,
                second_last_name=data.second_last_name,
                phone=data.phone,
                hashed_password=data.hashed_password,
                job_title_id=data.job_title_id,
            )
            user_id = user.id
            grants = await self._engine.provision_for_new_user(
                db, user_id, data.role_ids, data.municipality_ids
            )
            logger.info("Created user %s with %s grants", user_id, len(grants))
            return UserDetail(
                user=await self._load(repos, user_id),
                roles=await repos.roles.get_role_names_for_user(user_id),
                grants=grants,
            )

    @traced("users.update_user")
    async def update_user(self, db: Any, user_id: int, data: UserUpdate) -> UserDetail:
        """Update profile fields; resync grants only when roles or territories changed.

        Raises:
            ResourceNotFoundException: If the user (or a referenced id) does not exist.
            UserAlreadyExistsException: If the new email or username is taken.
        """
        async with self._uow(db) as repos:
            user = await repos.identity.lock_for_update(user_id)
            fields = data.profile_fields()
            if "job_title_id" in fields:
                await self._require_job_title(repos, fields["job_title_id"])
            if fields:
                await repos.identity.update_profile(user, fields)

            if data.role_ids is not None or data.municipality_ids is not None:
                grants = await self._engine.resync_for_updated_user(
                    db,
                    user_id,
                    role_ids=data.role_ids,
                    municipality_ids=data.municipality_ids,
                )
            else:
                grants = await repos.grants.list_for_user(user_id)
            return UserDetail(
                user=await self._load(repos, user_id),
                roles=await repos.roles.get_role_names_for_user(user_id),
                grants=grants,
            )

    async def deactivate_user(self, db: Any, user_id: int) -> int:
        """Deactivate the user and revoke all access. Returns grants revoked."""
        return await self._engine.revoke_all_for_user(db, user_id)

    async def get_user(self, db: Any, user_id: int) -> UserDetail:
        async with self._uow(db) as repos:
            return UserDetail(
                user=await self._load(repos, user_id),
                roles=await repos.roles.get_role_names_for_user(user_id),
                grants=await repos.grants.list_for_user(user_id),
            )

    async def list_users(self, db: Any, query: UserListQuery) -> UserPage:
        async with self._uow(db) as repos:
            rows, count = await repos.identity.list_users(query)
            return UserPage(rows=rows, count=count, page=query.page, limit=query.limit)

    async def _load(self, repos: Any, user_id: int) -> UserResult:
        user = await repos.identity.get_user_result(user_id)
        if user is None:
            raise ResourceNotFoundException("user", user_id)
        return user

    async def _require_job_title(self, repos: Any, job_title_id: int) -> None:
        found = await repos.catalog.get_existing_job_title_ids([job_title_id])
        if job_title_id not in found:
            raise ResourceNotFoundException("job_title", job_title_id)
