"""Identity repository: users, user-role links and the active flag.

Owns created_by/updated_by stamping (from the request actor context). Does
not hash credentials; callers pass an already hashed password.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.application.dtos.user import UserListQuery, UserResult
from access_matrix.domain.exceptions import (
    ResourceNotFoundException,
    UserAlreadyExistsException,
)
from access_matrix.infrastructure.persistence.models.role import UserRole
from access_matrix.infrastructure.persistence.models.user import User
from access_matrix.infrastructure.persistence.repositories.base import BaseRepository
from access_matrix.shared.context import get_current_actor_id
from access_matrix.shared.telemetry.logging import get_logger
from access_matrix.shared.utils.datetime import ensure_utc, utc_now

logger = get_logger(__name__)


def user_to_result(u: User) -> UserResult:
    """Map ORM User to application UserResult (no credential)."""
    return UserResult(
        id=u.id,
        username=u.username,
        email=u.email,
        first_name=u.first_name,
        last_name=u.last_name,
        second_last_name=u.second_last_name,
        phone=u.phone,
        active=u.active,
        job_title_id=u.job_title_id,
        created_by=u.created_by,
        updated_by=u.updated_by,
        created_at=ensure_utc(u.created_at),
        deleted_at=ensure_utc(u.deleted_at),
    )


class IdentityRepository(BaseRepository[User]):
    """User records and their role assignments."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, User)

    async def create_user(self, **fields: Any) -> User:
        """Insert a user stamped with the current actor as creator and updater.

        Raises:
            UserAlreadyExistsException: If email or username is already registered.
        """
        email = fields["email"]
        username = fields.get("username")
        conditions = [User.email == email]
        if username:
            conditions.append(User.username == username)
        existing = await self.db.execute(select(User.id).where(or_(*conditions)))
        if existing.first() is not None:
            raise UserAlreadyExistsException()
        actor_id = get_current_actor_id()
        user = User(**fields, created_by=actor_id, updated_by=actor_id)
        try:
            return await self.create(user)
        except IntegrityError:
            raise UserAlreadyExistsException() from None

    async def lock_for_update(self, user_id: int) -> User:
        """Return the user row locked FOR UPDATE for the rest of the transaction.

        Serializes concurrent matrix operations on the same user. Dialects
        without row locks (SQLite) ignore the clause.

        Raises:
            ResourceNotFoundException: If the user does not exist.
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id).with_for_update()
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise ResourceNotFoundException("user", user_id)
        return user

    async def update_profile(self, user: User, fields: dict[str, Any]) -> User:
        """Apply identity column changes and stamp updated_by."""
        if "email" in fields or "username" in fields:
            conditions = []
            if "email" in fields:
                conditions.append(User.email == fields["email"])
            if fields.get("username"):
                conditions.append(User.username == fields["username"])
            if conditions:
                clash = await self.db.execute(
                    select(User.id).where(or_(*conditions), User.id != user.id)
                )
                if clash.first() is not None:
                    raise UserAlreadyExistsException()
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_by = get_current_actor_id()
        try:
            return await self.update(user)
        except IntegrityError:
            raise UserAlreadyExistsException() from None

    async def set_user_active(self, user_id: int, active: bool) -> None:
        """Switch the active flag; deactivation also stamps deleted_at."""
        values: dict[str, Any] = {
            "active": active,
            "deleted_at": None if active else utc_now(),
            "updated_by": get_current_actor_id(),
        }
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )

    async def get_user_roles(self, user_id: int) -> list[int]:
        """Return ids of the user's current (not soft-deleted) roles."""
        result = await self.db.execute(
            select(UserRole.role_id)
            .where(UserRole.user_id == user_id, UserRole.deleted_at.is_(None))
            .order_by(UserRole.role_id.asc())
        )
        return list(result.scalars().all())

    async def set_user_roles(self, user_id: int, role_ids: list[int]) -> None:
        """Replace the user's role assignment (full replace, not additive).

        Removed links are soft-deleted; links to roles assigned again are
        re-activated; new roles get a fresh link.
        """
        wanted = set(role_ids)
        result = await self.db.execute(
            select(UserRole).where(UserRole.user_id == user_id)
        )
        links = {link.role_id: link for link in result.scalars().all()}
        now = utc_now()
        actor_id = get_current_actor_id()
        for role_id, link in links.items():
            if role_id in wanted and link.deleted_at is not None:
                link.deleted_at = None
                link.assigned_by = actor_id
                link.assigned_at = now
            elif role_id not in wanted and link.deleted_at is None:
                link.deleted_at = now
        self.db.add_all(
            UserRole(user_id=user_id, role_id=role_id, assigned_by=actor_id)
            for role_id in sorted(wanted - links.keys())
        )
        await self.db.flush()

    async def soft_delete_user_roles(self, user_id: int) -> int:
        """Soft-delete every current role link of the user. Returns rows touched."""
        result = await self.db.execute(
            update(UserRole)
            .where(UserRole.user_id == user_id, UserRole.deleted_at.is_(None))
            .values(deleted_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def get_user_result(self, user_id: int) -> UserResult | None:
        user = await self.get_by_id(user_id)
        return user_to_result(user) if user else None

    async def list_users(self, query: UserListQuery) -> tuple[list[UserResult], int]:
        """Return one page of users matching filters plus the total count.

        search matches name fields, username and email (case-insensitive).
        """
        conditions = []
        if query.active is not None:
            conditions.append(User.active.is_(query.active))
        if query.job_title_id is not None:
            conditions.append(User.job_title_id == query.job_title_id)
        if query.role_id is not None:
            conditions.append(
                User.id.in_(
                    select(UserRole.user_id).where(
                        UserRole.role_id == query.role_id, UserRole.deleted_at.is_(None)
                    )
                )
            )
        if query.search:
            pattern = f"%{query.search.lower()}%"
            conditions.append(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.second_last_name).like(pattern),
                    func.lower(User.username).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )
        total = await self.db.execute(
            select(func.count()).select_from(User).where(*conditions)
        )
        rows = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.id.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        return [user_to_result(u) for u in rows.scalars().all()], int(total.scalar_one())
