"""Monthly exam, individual exam, mark and result models."""

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class MonthlyExam(Base, IDMixin, TimestampMixin):
    """A batch-scoped grading period made of several individual exams."""

    __tablename__ = "monthly_exams"

    batch_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    is_finalized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    batch: Mapped["Batch"] = relationship("Batch", lazy="selectin")
    individual_exams: Mapped[list["IndividualExam"]] = relationship(
        "IndividualExam",
        back_populates="monthly_exam",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_exam_month"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyExam(id={self.id}, batch_id={self.batch_id}, {self.month}/{self.year})>"


class IndividualExam(Base, IDMixin, TimestampMixin):
    """One graded component of a monthly exam."""

    __tablename__ = "individual_exams"

    monthly_exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("monthly_exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(50), nullable=False, default="math")
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    monthly_exam: Mapped["MonthlyExam"] = relationship(
        "MonthlyExam",
        back_populates="individual_exams",
    )

    __table_args__ = (
        CheckConstraint("total_marks > 0", name="ck_individual_exam_total_marks"),
    )

    def __repr__(self) -> str:
        return f"<IndividualExam(id={self.id}, name={self.name})>"


class MonthlyMark(Base, IDMixin, TimestampMixin):
    """Obtained marks of one student in one individual exam."""

    __tablename__ = "monthly_marks"

    monthly_exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("monthly_exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    individual_exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("individual_exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    obtained_marks: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "monthly_exam_id", "individual_exam_id", "student_id",
            name="uq_monthly_mark",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyMark(exam={self.individual_exam_id}, student={self.student_id}, "
            f"marks={self.obtained_marks})>"
        )


class MonthlyResult(Base, IDMixin, TimestampMixin):
    """Materialized ranking row; rebuilt by ranking generation."""

    __tablename__ = "monthly_results"

    monthly_exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("monthly_exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    total_exam_marks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    attendance_marks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bonus_marks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    final_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    gpa: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)

    # Relationships
    student: Mapped["User"] = relationship("User", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("monthly_exam_id", "student_id", name="uq_monthly_result_student"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyResult(exam={self.monthly_exam_id}, student={self.student_id}, rank={self.rank})>"


from app.models.batch import Batch  # noqa: E402
from app.models.user import User  # noqa: E402
