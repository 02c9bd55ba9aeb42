"""Shared enumerations for the access matrix.

Cross-cutting enums used by application and infrastructure (audit,
actor type). Domain-specific enums live in access_matrix.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Actor type for audit tracking (who performed the action)."""

    USER = "user"
    SYSTEM = "system"


class AuditAction(_ValuesMixin, str, Enum):
    """Audit action verbs recorded for access-matrix mutations."""

    PROVISION = "PROVISION"
    RESYNC = "RESYNC"
    GRANT_EXCEPTION = "GRANT_EXCEPTION"
    REVOKE_EXCEPTION = "REVOKE_EXCEPTION"
    BATCH_UPDATE = "BATCH_UPDATE"
    REVOKE_ALL = "REVOKE_ALL"
    CREATE = "CREATE"
    UPDATE = "UPDATE"


class AuditModule(_ValuesMixin, str, Enum):
    """System area recorded in audit_log.module."""

    USERS = "USERS"
    ACCESS_MATRIX = "ACCESS_MATRIX"
    ROLES = "ROLES"
