"""DTOs for catalog entries (roles, municipalities, permissions, job titles)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RoleResult:
    """Role read-model."""

    id: int
    name: str
    description: str | None
    active: bool


@dataclass(frozen=True)
class MunicipalityResult:
    """Municipality read-model."""

    id: int
    num: int
    name: str
    active: bool


@dataclass(frozen=True)
class PermissionResult:
    """Permission read-model."""

    id: int
    name: str
    description: str | None
    active: bool


@dataclass(frozen=True)
class JobTitleResult:
    """Job title read-model."""

    id: int
    name: str
    active: bool
