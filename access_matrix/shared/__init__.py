"""Shared utilities: context, enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from access_matrix.shared.context import (
    ActorContext,
    clear_current_user,
    get_actor_context,
    get_current_actor_id,
    set_current_user,
)
from access_matrix.shared.enums import ActorType, AuditAction, AuditModule
from access_matrix.shared.utils import ensure_utc, generate_cuid, utc_now

__all__ = [
    "set_current_user",
    "clear_current_user",
    "get_current_actor_id",
    "get_actor_context",
    "ActorContext",
    "ActorType",
    "AuditAction",
    "AuditModule",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
