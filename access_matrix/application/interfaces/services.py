"""Service interfaces (ports) for the application layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from access_matrix.application.dtos.access_grant import MatrixChange


class IMatrixChangeListener(Protocol):
    """Consumer of committed matrix mutations (e.g. the audit trail).

    Called synchronously right after commit inside the event loop; must not
    block and must not raise.
    """

    def on_matrix_changed(self, change: MatrixChange) -> None:
        """Handle one committed change."""


class IAuditRecorder(Protocol):
    """Fire-and-forget audit writer."""

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
        """Schedule one audit entry; never raises, never blocks."""
