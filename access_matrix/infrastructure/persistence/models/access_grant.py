"""AccessGrant ORM model: one row of the user x municipality x permission matrix."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    IntegerIdMixin,
    TimestampMixin,
)


class AccessGrant(IntegerIdMixin, TimestampMixin, Base):
    """Grant row. Table: user_municipality_permission.

    is_exception marks rows set by direct administrative action; derived
    rows come from role expansion. Revocation flips active to false and
    stamps revoked_at; the row is reused if the triple is granted again.
    """

    __tablename__ = "user_municipality_permission"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("app_user.id", ondelete="RESTRICT"), nullable=False
    )
    municipality_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("municipality.id", ondelete="RESTRICT"), nullable=False
    )
    permission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("permission.id", ondelete="RESTRICT"), nullable=False
    )
    is_exception: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "municipality_id", "permission_id", name="uq_user_municipality_permission"
        ),
        Index("ix_grant_user_active", "user_id", "active"),
    )
