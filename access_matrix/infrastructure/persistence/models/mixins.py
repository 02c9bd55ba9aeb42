"""SQLAlchemy mixins for common model patterns.

Provides: IntegerIdMixin, TimestampMixin, SoftDeleteMixin, UserAuditMixin,
ActiveFlagMixin.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func


class IntegerIdMixin:
    """Mixin for models with an autoincrement integer primary key."""

    @declared_attr
    def id(cls) -> Mapped[int]:
        return mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    """Mixin for soft delete (deleted_at). Null means not deleted."""

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)


class ActiveFlagMixin:
    """Mixin for catalog rows that can be switched off without deletion."""

    @declared_attr
    def active(cls) -> Mapped[bool]:
        return mapped_column(
            Boolean, nullable=False, default=True, server_default=text("true")
        )


class UserAuditMixin(TimestampMixin, SoftDeleteMixin):
    """Mixin for user audit: created_by, updated_by (FK to app_user.id)."""

    @declared_attr
    def created_by(cls) -> Mapped[int | None]:
        return mapped_column(
            Integer,
            ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        )

    @declared_attr
    def updated_by(cls) -> Mapped[int | None]:
        return mapped_column(
            Integer, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
        )
