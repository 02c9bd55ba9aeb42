"""Audit trail: fire-and-forget writes to audit_log.

Entries are written on their own session so a failing audit insert can
never roll back (or delay) the matrix mutation it describes. Failures are
logged as AuditWriteException and swallowed.
"""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from access_matrix.application.dtos.access_grant import GrantPair, MatrixChange
from access_matrix.application.dtos.audit_log import AuditLogEntryCreate
from access_matrix.domain.exceptions import AuditWriteException
from access_matrix.infrastructure.persistence.repositories.audit_log_repo import (
    AuditLogRepository,
)
from access_matrix.infrastructure.persistence.repositories.catalog_repo import (
    CatalogRepository,
)
from access_matrix.shared.enums import AuditModule
from access_matrix.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AuditLogWriter:
    """Schedules audit_log inserts as background tasks."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        # Strong references; the event loop only keeps weak ones to tasks.
        self._pending: set[asyncio.Task[Any]] = set()

    def record_action(
        self,
        actor_id: int | None,
        action: str,
        module: str,
        entity_id: Any,
        details: dict[str, Any],
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Schedule one audit entry. Never raises, never blocks the caller."""
        entry = AuditLogEntryCreate(
            user_id=actor_id,
            action=getattr(action, "value", action),
            module=getattr(module, "value", module),
            entity_id=None if entity_id is None else str(entity_id),
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
        )
        self.spawn(self.write(entry), entry.action)

    def spawn(self, coro: Any, action: str) -> None:
        """Run coro in the background, keeping a reference until it finishes."""
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            error = AuditWriteException(action, "no running event loop")
            logger.error(
                "Audit entry dropped: %s: %s", error.message, error.details["reason"]
            )
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def write(self, entry: AuditLogEntryCreate) -> None:
        """Insert entry in its own transaction; log and swallow failures."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await AuditLogRepository(session).create(entry)
        except Exception as exc:
            error = AuditWriteException(entry.action, str(exc))
            logger.error("%s: %s", error.message, error.details["reason"], exc_info=True)

    async def drain(self) -> None:
        """Wait for every scheduled write (used on shutdown and in tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class MatrixAuditListener:
    """Turns committed matrix changes into audit entries with readable names."""

    def __init__(
        self,
        writer: AuditLogWriter,
        session_factory: async_sessionmaker[AsyncSession],
        module: str = AuditModule.USERS.value,
    ) -> None:
        self._writer = writer
        self._session_factory = session_factory
        self._module = module

    def on_matrix_changed(self, change: MatrixChange) -> None:
        self._writer.spawn(self._record(change), change.action.value)

    async def _record(self, change: MatrixChange) -> None:
        try:
            details = await self._describe(change)
        except Exception:
            logger.warning(
                "Could not resolve names for %s audit of user %s; recording ids only",
                change.action.value,
                change.user_id,
                exc_info=True,
            )
            details = _raw_details(change)
        entry = AuditLogEntryCreate(
            user_id=change.actor_id,
            action=change.action.value,
            module=self._module,
            entity_id=str(change.user_id),
            ip_address=change.ip_address,
            user_agent=change.user_agent,
            details=details,
        )
        await self._writer.write(entry)

    async def _describe(self, change: MatrixChange) -> dict[str, Any]:
        pairs = change.added | change.removed
        municipality_ids = {m for m, _ in pairs} | set(change.municipality_ids)
        permission_ids = {p for _, p in pairs}
        async with self._session_factory() as session:
            catalog = CatalogRepository(session)
            municipalities = await catalog.municipality_names(municipality_ids)
            permissions = await catalog.permission_names(permission_ids)

        def describe(cells: frozenset[GrantPair]) -> list[dict[str, Any]]:
            return [
                {
                    "municipality_id": m,
                    "municipality": municipalities.get(m),
                    "permission_id": p,
                    "permission": permissions.get(p),
                }
                for m, p in sorted(cells)
            ]

        return {
            "user_id": change.user_id,
            "added": describe(change.added),
            "removed": describe(change.removed),
            "municipalities": [
                municipalities.get(m, str(m)) for m in sorted(change.municipality_ids)
            ],
        }


def _raw_details(change: MatrixChange) -> dict[str, Any]:
    return {
        "user_id": change.user_id,
        "added": [list(pair) for pair in sorted(change.added)],
        "removed": [list(pair) for pair in sorted(change.removed)],
        "municipalities": sorted(change.municipality_ids),
    }
