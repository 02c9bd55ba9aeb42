"""DTOs for audit log entries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AuditLogEntryCreate:
    """Input for appending one audit log record. Append-only; no update."""

    user_id: int | None
    action: str
    module: str
    entity_id: str | None
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any]


@dataclass(frozen=True)
class AuditLogResult:
    """Single audit log entry (read-model for list)."""

    id: str
    user_id: int | None
    action: str
    module: str
    entity_id: str | None
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any]
    created_at: datetime
