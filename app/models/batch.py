"""Batch model."""

import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class BatchStatus(str, enum.Enum):
    """Batch lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class Batch(Base, IDMixin, TimestampMixin):
    """A group of students taught together."""

    __tablename__ = "batches"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(50), nullable=False)
    batch_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    status: Mapped[BatchStatus] = mapped_column(
        Enum(BatchStatus, values_callable=lambda e: [m.value for m in e]),
        default=BatchStatus.ACTIVE,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Batch(id={self.id}, code={self.batch_code})>"
