"""Monthly exams: marks, bonus, ranking and finalization."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AlreadyFinalizedError,
    FinalizedExamImmutableError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.models.batch import Batch
from app.models.monthly_exam import IndividualExam, MonthlyExam, MonthlyMark, MonthlyResult
from app.models.sms import SmsType
from app.models.user import User, UserRole
from app.schemas.monthly_exam import (
    MONTH_NAMES,
    BulkMarkRequest,
    BulkMarkResponse,
    IndividualExamCreate,
    MonthlyExamCreate,
    MonthlyMarkUpsert,
    MonthlyResultResponse,
    ResultNotificationResponse,
    TopAchiever,
)
from app.schemas.sms import SmsRecipient
from app.services.attendance import AttendanceService, month_window
from app.services.sms import SmsService, render_template
from app.services.student import StudentService

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

EXAM_MARKS_MESSAGE = "Dear Parent, {studentName} scored {marks}/{totalMarks} in {examName}."

# (minimum percentage, grade point), checked top-down
GPA_BANDS = [
    (Decimal("80"), Decimal("5.00")),
    (Decimal("70"), Decimal("4.00")),
    (Decimal("60"), Decimal("3.50")),
    (Decimal("50"), Decimal("3.00")),
    (Decimal("40"), Decimal("2.00")),
    (Decimal("33"), Decimal("1.00")),
]


def calculate_percentage(obtained: int, possible: int) -> Decimal:
    """Exam marks as a percentage of the marks on offer (unrounded)."""
    if possible <= 0:
        return Decimal("0")
    return Decimal(obtained) * 100 / Decimal(possible)


def calculate_gpa(percentage: Decimal) -> Decimal:
    """Grade point for a percentage."""
    for minimum, grade_point in GPA_BANDS:
        if percentage >= minimum:
            return grade_point
    return Decimal("0.00")


@dataclass
class StudentStanding:
    """Computed result of one student before ranking."""

    student_id: int
    total_exam_marks: int
    attendance_marks: int
    bonus_marks: int
    percentage: Decimal
    gpa: Decimal

    @property
    def final_total(self) -> int:
        return self.total_exam_marks + self.attendance_marks + self.bonus_marks


def build_standing(
    student_id: int,
    total_exam_marks: int,
    attendance_marks: int,
    bonus_marks: int,
    total_possible_marks: int,
) -> StudentStanding:
    """Percentage and GPA come from exam marks only; attendance and bonus
    count towards the final total but not towards the grade."""
    percentage = calculate_percentage(total_exam_marks, total_possible_marks)
    return StudentStanding(
        student_id=student_id,
        total_exam_marks=total_exam_marks,
        attendance_marks=attendance_marks,
        bonus_marks=bonus_marks,
        percentage=percentage.quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        gpa=calculate_gpa(percentage),
    )


def rank_standings(standings: list[StudentStanding]) -> list[tuple[int, StudentStanding]]:
    """Order by final total (desc) and number them from 1.

    Equal final totals are ordered by exam marks (desc), then student ID,
    so every pass over the same data yields the same ranks.
    """
    ordered = sorted(
        standings,
        key=lambda s: (-s.final_total, -s.total_exam_marks, s.student_id),
    )
    return [(position, standing) for position, standing in enumerate(ordered, start=1)]


class MonthlyExamService:
    """Monthly exam management, ranking engine and finalization."""

    def __init__(self, db: Session, sms_service: SmsService | None = None):
        self.db = db
        self.students = StudentService(db)
        self.attendance = AttendanceService(db)
        self.sms = sms_service or SmsService(db)

    # ==========================================
    # Monthly / Individual Exams
    # ==========================================

    def create_monthly_exam(
        self,
        request: MonthlyExamCreate,
        created_by: int | None = None,
    ) -> MonthlyExam:
        """Create a monthly exam period for a batch."""
        self.students.get_batch(request.batch_id)

        exam = MonthlyExam(
            batch_id=request.batch_id,
            month=request.month,
            year=request.year,
            title=request.title,
            is_finalized=False,
            created_by=created_by,
        )
        self.db.add(exam)
        self.db.flush()
        self.db.refresh(exam)
        return exam

    def get_monthly_exam(self, monthly_exam_id: int) -> MonthlyExam:
        """Get monthly exam by ID."""
        exam = self.db.get(MonthlyExam, monthly_exam_id)
        if not exam:
            raise NotFoundError("Monthly exam", str(monthly_exam_id))
        return exam

    def list_monthly_exams(self, batch_id: int | None = None) -> list[MonthlyExam]:
        """Monthly exams, newest first, optionally for one batch."""
        query = select(MonthlyExam)
        if batch_id is not None:
            query = query.where(MonthlyExam.batch_id == batch_id)
        result = self.db.execute(
            query.order_by(MonthlyExam.year.desc(), MonthlyExam.month.desc(), MonthlyExam.id.desc())
        )
        return list(result.scalars().all())

    def ensure_can_view(self, exam: MonthlyExam, user: User) -> None:
        """Students may only look at exams of their own batch."""
        if user.role == UserRole.STUDENT and user.batch_id != exam.batch_id:
            raise ForbiddenError("You can only view exams for your own batch")

    def _ensure_editable(self, exam: MonthlyExam, what: str) -> None:
        if exam.is_finalized:
            raise FinalizedExamImmutableError(
                exam.id,
                message=f"Cannot update {what} for finalized exam",
            )

    def create_individual_exam(self, request: IndividualExamCreate) -> IndividualExam:
        """Add a graded component to a monthly exam."""
        exam = self.get_monthly_exam(request.monthly_exam_id)
        self._ensure_editable(exam, "exams")

        individual = IndividualExam(
            monthly_exam_id=exam.id,
            name=request.name,
            subject=request.subject,
            total_marks=request.total_marks,
        )
        self.db.add(individual)
        self.db.flush()
        self.db.refresh(individual)
        return individual

    def get_individual_exam(self, individual_exam_id: int) -> IndividualExam:
        """Get individual exam by ID."""
        individual = self.db.get(IndividualExam, individual_exam_id)
        if not individual:
            raise NotFoundError("Individual exam", str(individual_exam_id))
        return individual

    def list_individual_exams(self, monthly_exam_id: int) -> list[IndividualExam]:
        """Components of a monthly exam in creation order."""
        result = self.db.execute(
            select(IndividualExam)
            .where(IndividualExam.monthly_exam_id == monthly_exam_id)
            .order_by(IndividualExam.id)
        )
        return list(result.scalars().all())

    # ==========================================
    # Mark Store
    # ==========================================

    def upsert_mark(self, request: MonthlyMarkUpsert) -> MonthlyMark:
        """Create or overwrite one student's marks for an individual exam."""
        exam = self.get_monthly_exam(request.monthly_exam_id)
        self._ensure_editable(exam, "marks")

        individual = self.get_individual_exam(request.individual_exam_id)
        if individual.monthly_exam_id != exam.id:
            raise ValidationError(
                f"Exam {individual.id} does not belong to monthly exam {exam.id}"
            )
        if request.obtained_marks > individual.total_marks:
            raise ValidationError(
                f"obtained_marks ({request.obtained_marks}) exceeds total_marks ({individual.total_marks})"
            )
        self.students.get_student(request.student_id)

        result = self.db.execute(
            select(MonthlyMark).where(
                MonthlyMark.monthly_exam_id == exam.id,
                MonthlyMark.individual_exam_id == individual.id,
                MonthlyMark.student_id == request.student_id,
            )
        )
        mark = result.scalar_one_or_none()
        if mark:
            mark.obtained_marks = request.obtained_marks
        else:
            mark = MonthlyMark(
                monthly_exam_id=exam.id,
                individual_exam_id=individual.id,
                student_id=request.student_id,
                obtained_marks=request.obtained_marks,
            )
            self.db.add(mark)

        self.db.flush()
        self.db.refresh(mark)
        return mark

    def sum_by_student(self, monthly_exam_id: int, student_id: int) -> int:
        """Total obtained marks of a student across a monthly exam."""
        result = self.db.execute(
            select(func.coalesce(func.sum(MonthlyMark.obtained_marks), 0)).where(
                MonthlyMark.monthly_exam_id == monthly_exam_id,
                MonthlyMark.student_id == student_id,
            )
        )
        return int(result.scalar() or 0)

    def list_marks(self, monthly_exam_id: int) -> list[MonthlyMark]:
        """All marks recorded for a monthly exam."""
        result = self.db.execute(
            select(MonthlyMark)
            .where(MonthlyMark.monthly_exam_id == monthly_exam_id)
            .order_by(MonthlyMark.individual_exam_id, MonthlyMark.student_id)
        )
        return list(result.scalars().all())

    def list_marks_for_individual_exam(self, individual_exam_id: int) -> list[MonthlyMark]:
        """Marks of one individual exam."""
        self.get_individual_exam(individual_exam_id)
        result = self.db.execute(
            select(MonthlyMark)
            .where(MonthlyMark.individual_exam_id == individual_exam_id)
            .order_by(MonthlyMark.student_id)
        )
        return list(result.scalars().all())

    def bulk_upsert_marks(
        self,
        request: BulkMarkRequest,
        sent_by: int | None = None,
    ) -> BulkMarkResponse:
        """Save many marks; with send_sms, notify each student's phone.

        The SMS balance is checked before any mark is written, so a short
        balance leaves the marks untouched.
        """
        student_map = self.students.get_students_by_ids(
            list({m.student_id for m in request.marks})
        )

        if request.send_sms:
            recipient_count = sum(
                1 for m in request.marks
                if student_map.get(m.student_id) and student_map[m.student_id].phone_number
            )
            self.sms.ensure_balance(recipient_count)

        saved = [self.upsert_mark(mark) for mark in request.marks]

        if not request.send_sms:
            return BulkMarkResponse(marks_count=len(saved))

        active = self.sms.get_active_template("exam_marks")
        template = active.message if active else EXAM_MARKS_MESSAGE
        recipients = []
        subject = None
        for mark in request.marks:
            student = student_map.get(mark.student_id)
            if not student or not student.phone_number:
                continue
            individual = self.get_individual_exam(mark.individual_exam_id)
            subject = subject or f"{individual.name} Result"
            recipients.append(
                SmsRecipient(
                    phone=student.phone_number,
                    name=f"{student.full_name}'s Parent",
                    student_id=student.id,
                    type="parent",
                    message=render_template(
                        template,
                        {
                            "studentName": student.full_name,
                            "marks": mark.obtained_marks,
                            "totalMarks": individual.total_marks,
                            "examName": individual.name,
                            "subject": individual.subject,
                        },
                    ),
                )
            )

        result = self.sms.send_bulk(
            recipients,
            message=template,
            sms_type=SmsType.EXAM_RESULT,
            subject=subject,
            sent_by=sent_by,
        )
        return BulkMarkResponse(
            marks_count=len(saved),
            sms_sent=result.sent,
            sms_failed=result.failed,
            new_balance=result.new_balance,
        )

    # ==========================================
    # Bonus Ledger
    # ==========================================

    def _get_result_rows(self, monthly_exam_id: int) -> dict[int, MonthlyResult]:
        result = self.db.execute(
            select(MonthlyResult).where(MonthlyResult.monthly_exam_id == monthly_exam_id)
        )
        return {row.student_id: row for row in result.scalars().all()}

    def update_bonus_marks(
        self,
        monthly_exam_id: int,
        student_id: int,
        bonus_marks: int,
    ) -> MonthlyResult:
        """Set a student's bonus; creates a placeholder result row if needed.

        Only bonus_marks changes on an existing row; its final_total is
        recomputed by the next generate_final_ranking().
        """
        exam = self.get_monthly_exam(monthly_exam_id)
        self._ensure_editable(exam, "bonus marks")
        student = self.students.get_student(student_id)
        if student.batch_id != exam.batch_id:
            raise ValidationError(
                f"Student {student_id} is not in batch {exam.batch_id}",
                details={"student_id": student_id, "batch_id": exam.batch_id},
            )

        row = self._get_result_rows(exam.id).get(student_id)
        if row:
            row.bonus_marks = bonus_marks
        else:
            row = MonthlyResult(
                monthly_exam_id=exam.id,
                student_id=student_id,
                total_exam_marks=0,
                attendance_marks=0,
                bonus_marks=bonus_marks,
                final_total=bonus_marks,
            )
            self.db.add(row)

        self.db.flush()
        self.db.refresh(row)
        return row

    # ==========================================
    # Ranking Engine
    # ==========================================

    def generate_final_ranking(self, monthly_exam_id: int) -> list[MonthlyResult]:
        """Rebuild every result row of the batch from marks, attendance and bonus."""
        exam = self.get_monthly_exam(monthly_exam_id)
        if exam.is_finalized:
            raise AlreadyFinalizedError(exam.id)

        month_start, month_end = month_window(exam.year, exam.month)
        students = self.students.list_students_in_batch(exam.batch_id)

        exam_marks: dict[int, int] = defaultdict(int)
        for mark in self.list_marks(exam.id):
            exam_marks[mark.student_id] += mark.obtained_marks

        present_days = self.attendance.present_counts(exam.batch_id, month_start, month_end)
        total_possible_marks = sum(e.total_marks for e in self.list_individual_exams(exam.id))
        existing = self._get_result_rows(exam.id)

        standings = [
            build_standing(
                student_id=student.id,
                total_exam_marks=exam_marks.get(student.id, 0),
                attendance_marks=present_days.get(student.id, 0),
                bonus_marks=existing[student.id].bonus_marks if student.id in existing else 0,
                total_possible_marks=total_possible_marks,
            )
            for student in students
        ]

        ranked_rows = []
        for rank, standing in rank_standings(standings):
            row = existing.get(standing.student_id)
            if row is None:
                row = MonthlyResult(
                    monthly_exam_id=exam.id,
                    student_id=standing.student_id,
                    bonus_marks=standing.bonus_marks,
                )
                self.db.add(row)
            row.total_exam_marks = standing.total_exam_marks
            row.attendance_marks = standing.attendance_marks
            row.final_total = standing.final_total
            row.percentage = standing.percentage
            row.gpa = standing.gpa
            row.rank = rank
            ranked_rows.append(row)

        # Rows of students no longer in the batch stay, unranked
        batch_student_ids = {s.id for s in students}
        for student_id, row in existing.items():
            if student_id not in batch_student_ids:
                row.rank = None

        self.db.flush()
        logger.info(
            f"[RANKING] Generated ranking for monthly exam {exam.id}: "
            f"{len(ranked_rows)} students, {total_possible_marks} possible marks"
        )
        return ranked_rows

    def result_to_response(self, row: MonthlyResult) -> dict:
        """Convert MonthlyResult to response dict."""
        return {
            "id": row.id,
            "monthly_exam_id": row.monthly_exam_id,
            "student_id": row.student_id,
            "student_name": row.student.full_name if row.student else "",
            "total_exam_marks": row.total_exam_marks,
            "attendance_marks": row.attendance_marks,
            "bonus_marks": row.bonus_marks,
            "final_total": row.final_total,
            "rank": row.rank,
            "percentage": row.percentage,
            "gpa": row.gpa,
        }

    def list_results(self, monthly_exam_id: int) -> list[MonthlyResultResponse]:
        """Result rows ordered by rank; unranked rows last."""
        self.get_monthly_exam(monthly_exam_id)
        result = self.db.execute(
            select(MonthlyResult)
            .where(MonthlyResult.monthly_exam_id == monthly_exam_id)
            .order_by(MonthlyResult.rank.is_(None), MonthlyResult.rank, MonthlyResult.student_id)
        )
        return [
            MonthlyResultResponse.model_validate(self.result_to_response(row))
            for row in result.scalars().all()
        ]

    # ==========================================
    # Finalization
    # ==========================================

    def finalize(self, monthly_exam_id: int) -> MonthlyExam:
        """Recompute the ranking one last time, then lock the exam."""
        self.generate_final_ranking(monthly_exam_id)
        exam = self.get_monthly_exam(monthly_exam_id)
        exam.is_finalized = True
        self.db.flush()
        self.db.refresh(exam)
        logger.info(f"[FINALIZE] Monthly exam {exam.id} finalized")
        return exam

    def unfinalize(self, monthly_exam_id: int) -> MonthlyExam:
        """Reopen an exam for editing; existing results are kept as they are."""
        exam = self.get_monthly_exam(monthly_exam_id)
        exam.is_finalized = False
        self.db.flush()
        self.db.refresh(exam)
        logger.info(f"[FINALIZE] Monthly exam {exam.id} reopened for editing")
        return exam

    # ==========================================
    # Notifications / Public views
    # ==========================================

    def notify_results(
        self,
        monthly_exam_id: int,
        sent_by: int | None = None,
    ) -> ResultNotificationResponse:
        """SMS every ranked student of a finalized exam their result."""
        exam = self.get_monthly_exam(monthly_exam_id)
        if not exam.is_finalized:
            raise ValidationError("Results can only be sent for a finalized exam")

        template = self.sms.template_text("monthly_result")
        recipients = []
        for row in self._get_result_rows(exam.id).values():
            student = row.student
            if row.rank is None or not student or not student.phone_number:
                continue
            recipients.append(
                SmsRecipient(
                    phone=student.phone_number,
                    name=student.full_name,
                    student_id=student.id,
                    message=render_template(
                        template,
                        {
                            "studentName": student.full_name,
                            "totalMarks": row.final_total,
                            "rank": row.rank,
                            "attendanceMarks": row.attendance_marks,
                            "percentage": row.percentage,
                            "gpa": row.gpa,
                            "examTitle": exam.title,
                        },
                    ),
                )
            )
        recipients.sort(key=lambda r: r.student_id)

        result = self.sms.send_bulk(
            recipients,
            message=template,
            sms_type=SmsType.EXAM_RESULT,
            subject=f"{exam.title} Result",
            sent_by=sent_by,
        )
        return ResultNotificationResponse(
            total=result.total,
            sent=result.sent,
            failed=result.failed,
            new_balance=result.new_balance,
        )

    def top_achievers(self, today: date | None = None) -> list[TopAchiever]:
        """Top three of each batch's finalized exam for this month (else the latest)."""
        today = today or date.today()
        batches = self.db.execute(select(Batch).order_by(Batch.id)).scalars().all()
        finalized = self.db.execute(
            select(MonthlyExam)
            .where(MonthlyExam.is_finalized == True)  # noqa: E712
            .order_by(MonthlyExam.year.desc(), MonthlyExam.month.desc(), MonthlyExam.id.desc())
        ).scalars().all()

        achievers = []
        for batch in batches:
            candidates = [e for e in finalized if e.batch_id == batch.id]
            if not candidates:
                continue
            exam = next(
                (e for e in candidates if (e.year, e.month) == (today.year, today.month)),
                candidates[0],
            )

            # Unranked rows belong to students no longer in the batch
            ranked = [r for r in self._get_result_rows(exam.id).values() if r.rank is not None]
            top = sorted((r for r in ranked if 1 <= r.rank <= 3), key=lambda r: r.rank)[:3]
            if len(top) < 3 and ranked:
                top = sorted(ranked, key=lambda r: (-r.final_total, r.student_id))[:3]

            month_year = f"{MONTH_NAMES[exam.month - 1]} {exam.year}"
            for row in top:
                if not row.student:
                    continue
                achievers.append(
                    TopAchiever(
                        student_name=row.student.full_name,
                        batch_name=batch.name,
                        rank=row.rank,
                        final_total=row.final_total,
                        percentage=row.percentage,
                        exam_title=exam.title,
                        month_year=month_year,
                    )
                )
        return achievers
