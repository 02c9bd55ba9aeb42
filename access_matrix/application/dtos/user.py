"""DTOs for user management use cases."""

from dataclasses import dataclass, field
from datetime import datetime

from access_matrix.application.dtos.access_grant import GrantResult


@dataclass(frozen=True)
class UserCreate:
    """Input for creating a user. hashed_password is produced by the auth layer."""

    email: str
    first_name: str
    last_name: str
    hashed_password: str
    municipality_ids: list[int]
    role_ids: list[int] = field(default_factory=list)
    username: str | None = None
    second_last_name: str | None = None
    phone: str | None = None
    job_title_id: int | None = None


@dataclass(frozen=True)
class UserUpdate:
    """Partial user update. None means "unchanged" for every field.

    For role_ids/municipality_ids an empty list is an explicit request
    (no roles / revoke all territories), distinct from None.
    """

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    second_last_name: str | None = None
    phone: str | None = None
    username: str | None = None
    hashed_password: str | None = None
    job_title_id: int | None = None
    role_ids: list[int] | None = None
    municipality_ids: list[int] | None = None

    def profile_fields(self) -> dict[str, object]:
        """Return the supplied identity columns (excludes roles and territories)."""
        names = (
            "email",
            "first_name",
            "last_name",
            "second_last_name",
            "phone",
            "username",
            "hashed_password",
            "job_title_id",
        )
        return {n: getattr(self, n) for n in names if getattr(self, n) is not None}


@dataclass(frozen=True)
class UserResult:
    """User read-model (never carries the credential)."""

    id: int
    username: str | None
    email: str
    first_name: str
    last_name: str
    second_last_name: str | None
    phone: str | None
    active: bool
    job_title_id: int | None
    created_by: int | None
    updated_by: int | None
    created_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class UserDetail:
    """User with role names and matrix grants."""

    user: UserResult
    roles: list[str]
    grants: list[GrantResult]


@dataclass(frozen=True)
class UserListQuery:
    """Filters and pagination for listing users."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    active: bool | None = None
    job_title_id: int | None = None
    role_id: int | None = None

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


@dataclass(frozen=True)
class UserPage:
    """One page of users plus pagination totals."""

    rows: list[UserResult]
    count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.count // self.limit)
