"""JobTitle ORM model ("cargo"). Descriptive lookup attached to users."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    TimestampMixin,
)


class JobTitle(IntegerIdMixin, ActiveFlagMixin, TimestampMixin, Base):
    """Job title. Table: job_title. No coupling to the access matrix."""

    __tablename__ = "job_title"

    name: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
