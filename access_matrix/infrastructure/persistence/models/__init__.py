"""Persistence models: ORM entities and mixins.

Importing this package registers every table on Base.metadata, with all
foreign keys declared statically.
"""

from access_matrix.infrastructure.persistence.models.access_grant import AccessGrant
from access_matrix.infrastructure.persistence.models.audit_log import AuditLog
from access_matrix.infrastructure.persistence.models.job_title import JobTitle
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    SoftDeleteMixin,
    TimestampMixin,
    UserAuditMixin,
)
from access_matrix.infrastructure.persistence.models.municipality import Municipality
from access_matrix.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from access_matrix.infrastructure.persistence.models.role import Role, UserRole
from access_matrix.infrastructure.persistence.models.user import User

__all__ = [
    "AccessGrant",
    "AuditLog",
    "JobTitle",
    "Municipality",
    "Permission",
    "Role",
    "RolePermission",
    "User",
    "UserRole",
    "ActiveFlagMixin",
    "IntegerIdMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UserAuditMixin",
]
