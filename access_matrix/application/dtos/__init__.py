"""Application DTOs: plain read/write models shared by services and repositories."""

from access_matrix.application.dtos.access_grant import (
    GrantChange,
    GrantPair,
    GrantResult,
    MatrixChange,
    TerritoryAccess,
)
from access_matrix.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from access_matrix.application.dtos.catalog import (
    JobTitleResult,
    MunicipalityResult,
    PermissionResult,
    RoleResult,
)
from access_matrix.application.dtos.user import (
    UserCreate,
    UserDetail,
    UserListQuery,
    UserPage,
    UserResult,
    UserUpdate,
)

__all__ = [
    "AuditLogEntryCreate",
    "AuditLogResult",
    "GrantChange",
    "GrantPair",
    "GrantResult",
    "JobTitleResult",
    "MatrixChange",
    "MunicipalityResult",
    "PermissionResult",
    "RoleResult",
    "TerritoryAccess",
    "UserCreate",
    "UserDetail",
    "UserListQuery",
    "UserPage",
    "UserResult",
    "UserUpdate",
]
