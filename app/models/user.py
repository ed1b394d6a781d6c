"""User model."""

import enum

from sqlalchemy import BigInteger, Boolean, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """User role enumeration."""

    TEACHER = "teacher"
    STUDENT = "student"
    SUPER_USER = "super_user"


class User(Base, IDMixin, TimestampMixin):
    """System user; students are users assigned to a batch."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.STUDENT,
        nullable=False,
    )
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    batch_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    batch: Mapped["Batch"] = relationship("Batch", lazy="selectin")

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


# Import to avoid circular imports
from app.models.batch import Batch  # noqa: E402
