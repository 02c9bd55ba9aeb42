"""User ORM model (identity record)."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    UserAuditMixin,
)


class User(IntegerIdMixin, ActiveFlagMixin, UserAuditMixin, Base):
    """User model. Table: app_user. Unique username (optional) and email.

    Soft-deleted (active=false + deleted_at); never hard-deleted while
    referenced by grants. created_by/updated_by point back at app_user.
    """

    __tablename__ = "app_user"

    username: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    second_last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    job_title_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("job_title.id", ondelete="SET NULL"), nullable=True, index=True
    )
