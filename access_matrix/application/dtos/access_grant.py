"""DTOs for the access matrix (no dependency on ORM)."""

from dataclasses import dataclass, field

from access_matrix.domain.enums import GrantState
from access_matrix.shared.enums import AuditAction

# (municipality_id, permission_id)
GrantPair = tuple[int, int]


@dataclass(frozen=True)
class GrantChange:
    """One requested cell change in a batch: grant=True adds an exception, False revokes."""

    municipality_id: int
    permission_id: int
    grant: bool


@dataclass(frozen=True)
class GrantResult:
    """Grant read-model (one matrix cell)."""

    user_id: int
    municipality_id: int
    permission_id: int
    is_exception: bool
    active: bool

    @property
    def state(self) -> GrantState:
        return GrantState.of(active=self.active, is_exception=self.is_exception)

    @property
    def pair(self) -> GrantPair:
        return (self.municipality_id, self.permission_id)


@dataclass(frozen=True)
class TerritoryAccess:
    """Active permission names of a user in one municipality."""

    municipality_id: int
    num: int
    name: str
    permissions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MatrixChange:
    """Post-commit event describing one committed matrix mutation.

    added/removed are the active (municipality, permission) pairs that
    appeared or disappeared; municipality_ids is the target territory set.
    """

    user_id: int
    action: AuditAction
    added: frozenset[GrantPair]
    removed: frozenset[GrantPair]
    municipality_ids: frozenset[int]
    actor_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
