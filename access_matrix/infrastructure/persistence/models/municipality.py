"""Municipality ORM model. Territorial scope unit for permissions."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from access_matrix.infrastructure.persistence.database import Base
from access_matrix.infrastructure.persistence.models.mixins import (
    ActiveFlagMixin,
    IntegerIdMixin,
    TimestampMixin,
)


class Municipality(IntegerIdMixin, ActiveFlagMixin, TimestampMixin, Base):
    """Municipality catalog entry. Table: municipality. Listed by num."""

    __tablename__ = "municipality"

    num: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
