"""Wiring: build the engine and user service from settings.

The only module that knows both the application services and their
SQLAlchemy implementations. Callers (route layer, scripts) obtain services
here and pass their own AsyncSession to every operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from access_matrix.application.services.access_matrix_engine import AccessMatrixEngine
from access_matrix.application.services.provisioning_policy import PermissionExpander
from access_matrix.application.services.user_service import UserService
from access_matrix.core.config import Settings, get_settings
from access_matrix.infrastructure.persistence.database import get_session_factory
from access_matrix.infrastructure.persistence.matrix_uow import sql_matrix_unit_of_work
from access_matrix.infrastructure.services.audit_writer import (
    AuditLogWriter,
    MatrixAuditListener,
)


@dataclass(frozen=True)
class Services:
    """Process-wide service instances."""

    engine: AccessMatrixEngine
    users: UserService
    audit_writer: AuditLogWriter | None


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> Services:
    """Assemble services; audit_enabled=False leaves the engine without a listener."""
    writer = None
    listener = None
    if settings.audit_enabled:
        writer = AuditLogWriter(session_factory)
        listener = MatrixAuditListener(
            writer, session_factory, module=settings.audit_default_module
        )
    engine = AccessMatrixEngine(
        sql_matrix_unit_of_work,
        PermissionExpander.from_settings(settings),
        listener,
    )
    return Services(
        engine=engine,
        users=UserService(sql_matrix_unit_of_work, engine),
        audit_writer=writer,
    )


@lru_cache
def get_services() -> Services:
    """Return the cached services bound to the process-wide session factory."""
    return build_services(get_settings(), get_session_factory())


def get_access_matrix_engine() -> AccessMatrixEngine:
    return get_services().engine


def get_user_service() -> UserService:
    return get_services().users
