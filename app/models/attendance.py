"""Attendance record model."""

import enum
from datetime import date

from sqlalchemy import BigInteger, Date, Enum, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class AttendanceStatus(str, enum.Enum):
    """Attendance status enumeration."""

    PRESENT = "present"
    EXCUSED = "excused"
    ABSENT = "absent"


class AttendanceRecord(Base, IDMixin, TimestampMixin):
    """One student's attendance in one batch on one day."""

    __tablename__ = "attendance_records"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus, values_callable=lambda e: [m.value for m in e]),
        default=AttendanceStatus.PRESENT,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    marked_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    student: Mapped["User"] = relationship(
        "User",
        foreign_keys=[student_id],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "batch_id", "attendance_date",
            name="uq_attendance_student_batch_date",
        ),
    )

    @property
    def student_name(self) -> str:
        """Get student name from relationship."""
        return self.student.full_name if self.student else ""

    def __repr__(self) -> str:
        return f"<AttendanceRecord(student_id={self.student_id}, date={self.attendance_date})>"


from app.models.user import User  # noqa: E402
