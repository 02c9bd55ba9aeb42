"""Access grant repository: the only writer of user_municipality_permission.

Writes are set-based: upserts on the (user, municipality, permission)
unique key and single-statement revocations. Reads select columns (not ORM
entities) so results never come from a stale identity map.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from access_matrix.application.dtos.access_grant import (
    GrantPair,
    GrantResult,
    TerritoryAccess,
)
from access_matrix.infrastructure.persistence.database import dialect_insert
from access_matrix.infrastructure.persistence.models.access_grant import AccessGrant
from access_matrix.infrastructure.persistence.models.municipality import Municipality
from access_matrix.infrastructure.persistence.models.permission import Permission
from access_matrix.shared.utils.datetime import utc_now

# Rows per INSERT/OR-chain; keeps bind parameters well under driver limits.
_CHUNK_SIZE = 500

_CONFLICT_KEY = ["user_id", "municipality_id", "permission_id"]

_GRANT_COLUMNS = (
    AccessGrant.user_id,
    AccessGrant.municipality_id,
    AccessGrant.permission_id,
    AccessGrant.is_exception,
    AccessGrant.active,
)


def _chunks(pairs: Sequence[GrantPair]) -> Iterable[Sequence[GrantPair]]:
    for start in range(0, len(pairs), _CHUNK_SIZE):
        yield pairs[start : start + _CHUNK_SIZE]


def _pair_filter(pairs: Sequence[GrantPair]):
    return or_(
        *(
            and_(
                AccessGrant.municipality_id == municipality_id,
                AccessGrant.permission_id == permission_id,
            )
            for municipality_id, permission_id in pairs
        )
    )


class AccessGrantRepository:
    """Grant rows for one session. All methods are scoped to a single user."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_for_user(
        self, user_id: int, *, include_inactive: bool = False
    ) -> list[GrantResult]:
        q = (
            select(*_GRANT_COLUMNS)
            .where(AccessGrant.user_id == user_id)
            .order_by(AccessGrant.municipality_id, AccessGrant.permission_id)
        )
        if not include_inactive:
            q = q.where(AccessGrant.active.is_(True))
        result = await self.db.execute(q)
        return [
            GrantResult(
                user_id=row.user_id,
                municipality_id=row.municipality_id,
                permission_id=row.permission_id,
                is_exception=row.is_exception,
                active=row.active,
            )
            for row in result
        ]

    async def get(
        self, user_id: int, municipality_id: int, permission_id: int
    ) -> GrantResult | None:
        result = await self.db.execute(
            select(*_GRANT_COLUMNS).where(
                AccessGrant.user_id == user_id,
                AccessGrant.municipality_id == municipality_id,
                AccessGrant.permission_id == permission_id,
            )
        )
        row = result.first()
        if row is None:
            return None
        return GrantResult(
            user_id=row.user_id,
            municipality_id=row.municipality_id,
            permission_id=row.permission_id,
            is_exception=row.is_exception,
            active=row.active,
        )

    async def get_active_pairs(self, user_id: int) -> set[GrantPair]:
        result = await self.db.execute(
            select(AccessGrant.municipality_id, AccessGrant.permission_id).where(
                AccessGrant.user_id == user_id, AccessGrant.active.is_(True)
            )
        )
        return {(row.municipality_id, row.permission_id) for row in result}

    async def get_derived_municipality_ids(self, user_id: int) -> set[int]:
        """Municipalities holding at least one active non-exception grant."""
        result = await self.db.execute(
            select(AccessGrant.municipality_id)
            .where(
                AccessGrant.user_id == user_id,
                AccessGrant.active.is_(True),
                AccessGrant.is_exception.is_(False),
            )
            .distinct()
        )
        return set(result.scalars().all())

    async def upsert_derived(self, user_id: int, pairs: Sequence[GrantPair]) -> None:
        """Insert or re-activate derived grants.

        An active exception row for the same pair is left untouched.
        """
        for chunk in _chunks(pairs):
            stmt = dialect_insert(self.db, AccessGrant).values(
                [
                    {
                        "user_id": user_id,
                        "municipality_id": municipality_id,
                        "permission_id": permission_id,
                        "is_exception": False,
                        "active": True,
                        "revoked_at": None,
                    }
                    for municipality_id, permission_id in chunk
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=_CONFLICT_KEY,
                set_={
                    "is_exception": False,
                    "active": True,
                    "revoked_at": None,
                    "updated_at": func.now(),
                },
                where=or_(
                    AccessGrant.active.is_(False), AccessGrant.is_exception.is_(False)
                ),
            )
            await self.db.execute(stmt)

    async def upsert_exceptions(self, user_id: int, pairs: Sequence[GrantPair]) -> None:
        """Insert or convert rows into active exception grants (idempotent)."""
        for chunk in _chunks(pairs):
            stmt = dialect_insert(self.db, AccessGrant).values(
                [
                    {
                        "user_id": user_id,
                        "municipality_id": municipality_id,
                        "permission_id": permission_id,
                        "is_exception": True,
                        "active": True,
                        "revoked_at": None,
                    }
                    for municipality_id, permission_id in chunk
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=_CONFLICT_KEY,
                set_={
                    "is_exception": True,
                    "active": True,
                    "revoked_at": None,
                    "updated_at": func.now(),
                },
            )
            await self.db.execute(stmt)

    async def _revoke(self, *criteria) -> int:
        now = utc_now()
        result = await self.db.execute(
            update(AccessGrant)
            .where(*criteria, AccessGrant.active.is_(True))
            .values(active=False, revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def revoke_derived(self, user_id: int) -> int:
        """Revoke every active non-exception grant of the user."""
        return await self._revoke(
            AccessGrant.user_id == user_id, AccessGrant.is_exception.is_(False)
        )

    async def revoke_pairs(self, user_id: int, pairs: Sequence[GrantPair]) -> int:
        """Revoke the given cells regardless of provenance."""
        revoked = 0
        for chunk in _chunks(pairs):
            revoked += await self._revoke(AccessGrant.user_id == user_id, _pair_filter(chunk))
        return revoked

    async def revoke_all(self, user_id: int) -> int:
        """Revoke every active grant of the user, exceptions included."""
        return await self._revoke(AccessGrant.user_id == user_id)

    async def has_permission(
        self, user_id: int, municipality_id: int, permission_name: str
    ) -> bool:
        result = await self.db.execute(
            select(AccessGrant.id)
            .join(Permission, Permission.id == AccessGrant.permission_id)
            .where(
                AccessGrant.user_id == user_id,
                AccessGrant.municipality_id == municipality_id,
                AccessGrant.active.is_(True),
                Permission.name == permission_name,
                Permission.active.is_(True),
            )
            .limit(1)
        )
        return result.first() is not None

    async def territory_access(self, user_id: int) -> list[TerritoryAccess]:
        """Group the user's active permission names by municipality (ordered by num)."""
        result = await self.db.execute(
            select(
                Municipality.id,
                Municipality.num,
                Municipality.name,
                Permission.name.label("permission_name"),
            )
            .select_from(AccessGrant)
            .join(Municipality, Municipality.id == AccessGrant.municipality_id)
            .join(Permission, Permission.id == AccessGrant.permission_id)
            .where(AccessGrant.user_id == user_id, AccessGrant.active.is_(True))
            .order_by(Municipality.num.asc(), Permission.id.asc())
        )
        territories: dict[int, TerritoryAccess] = {}
        for row in result:
            territory = territories.get(row.id)
            if territory is None:
                territory = TerritoryAccess(municipality_id=row.id, num=row.num, name=row.name)
                territories[row.id] = territory
            territory.permissions.append(row.permission_name)
        return list(territories.values())
