"""Repositories: SQLAlchemy implementations of the catalog, identity and grant ports."""

from access_matrix.infrastructure.persistence.repositories.access_grant_repo import (
    AccessGrantRepository,
)
from access_matrix.infrastructure.persistence.repositories.audit_log_repo import (
    AuditLogRepository,
)
from access_matrix.infrastructure.persistence.repositories.base import BaseRepository
from access_matrix.infrastructure.persistence.repositories.catalog_repo import (
    CatalogRepository,
)
from access_matrix.infrastructure.persistence.repositories.identity_repo import (
    IdentityRepository,
)
from access_matrix.infrastructure.persistence.repositories.role_catalog_repo import (
    RoleCatalogRepository,
)

__all__ = [
    "AccessGrantRepository",
    "AuditLogRepository",
    "BaseRepository",
    "CatalogRepository",
    "IdentityRepository",
    "RoleCatalogRepository",
]
