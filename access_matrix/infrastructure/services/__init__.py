"""Infrastructure services: audit trail writer and matrix change listener."""

from access_matrix.infrastructure.services.audit_writer import (
    AuditLogWriter,
    MatrixAuditListener,
)

__all__ = ["AuditLogWriter", "MatrixAuditListener"]
