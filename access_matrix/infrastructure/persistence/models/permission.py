"""Permission and RolePermission ORM models."""

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    TimestampMixin,
)


class Permission(IntegerIdMixin, ActiveFlagMixin, TimestampMixin, Base):
    """Permission catalog entry (view, edit, delete, print, download). Table: permission."""

    __tablename__ = "permission"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class RolePermission(IntegerIdMixin, Base):
    """Many-to-many role-permission (a role's base permissions). Table: role_permission."""

    __tablename__ = "role_permission"

    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("permission.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permission_lookup", "role_id"),
    )
