"""Role and UserRole ORM models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    SoftDeleteMixin,
    TimestampMixin,
)


class Role(IntegerIdMixin, ActiveFlagMixin, TimestampMixin, Base):
    """Role (named permission bundle). Table: role. Unique name."""

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class UserRole(IntegerIdMixin, SoftDeleteMixin, Base):
    """Many-to-many user-role. Table: user_role.

    Replaced assignments are soft-deleted (deleted_at) and re-activated if
    the role is assigned again, so (user_id, role_id) stays unique.
    """

    __tablename__ = "user_role"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    assigned_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_role"),
        Index("ix_user_role_lookup", "user_id"),
    )
