"""Audit log repository. Append-only."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_matrix.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from access_matrix.infrastructure.persistence.models.audit_log import AuditLog
from access_matrix.shared.utils.datetime import ensure_utc
from access_matrix.shared.utils.generators import generate_cuid


def _orm_to_result(row: AuditLog) -> AuditLogResult:
    """Map ORM to application DTO."""
    return AuditLogResult(
        id=row.id,
        user_id=row.user_id,
        action=row.action,
        module=row.module,
        entity_id=row.entity_id,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        details=row.details,
        created_at=ensure_utc(row.created_at),
    )


class AuditLogRepository:
    """Append-only audit log repository. No update/delete."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Append one audit log entry; return created record."""
        row = AuditLog(
            id=generate_cuid(),
            user_id=entry.user_id,
            action=entry.action,
            module=entry.module,
            entity_id=entry.entity_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            details=entry.details,
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _orm_to_result(row)

    async def list(
        self,
        *,
        skip: int = 0,
        limit: int = 100,
        module: str | None = None,
        entity_id: str | None = None,
        user_id: int | None = None,
        from_timestamp: datetime | None = None,
        to_timestamp: datetime | None = None,
    ) -> list[AuditLogResult]:
        """List audit log entries with optional filters (newest first)."""
        conditions = []
        if module is not None:
            conditions.append(AuditLog.module == module)
        if entity_id is not None:
            conditions.append(AuditLog.entity_id == entity_id)
        if user_id is not None:
            conditions.append(AuditLog.user_id == user_id)
        if from_timestamp is not None:
            conditions.append(AuditLog.created_at >= from_timestamp)
        if to_timestamp is not None:
            conditions.append(AuditLog.created_at <= to_timestamp)

        stmt = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [_orm_to_result(r) for r in result.scalars().all()]
