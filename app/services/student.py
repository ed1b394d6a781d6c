"""Batch and student directory lookups."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.batch import Batch
from app.models.user import User, UserRole


class StudentService:
    """Read-only access to batches and the students assigned to them."""

    def __init__(self, db: Session):
        self.db = db

    def get_batch(self, batch_id: int) -> Batch:
        """Get batch by ID."""
        batch = self.db.get(Batch, batch_id)
        if not batch:
            raise NotFoundError("Batch", str(batch_id))
        return batch

    def get_student(self, student_id: int) -> User:
        """Get a student user by ID."""
        result = self.db.execute(
            select(User).where(
                User.id == student_id,
                User.role == UserRole.STUDENT,
            )
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    def list_students_in_batch(self, batch_id: int) -> list[User]:
        """Students currently assigned to the batch, in ID order."""
        result = self.db.execute(
            select(User)
            .where(
                User.batch_id == batch_id,
                User.role == UserRole.STUDENT,
            )
            .order_by(User.id)
        )
        return list(result.scalars().all())

    def get_students_by_ids(self, student_ids: list[int]) -> dict[int, User]:
        """Map of student ID to user for the given IDs."""
        if not student_ids:
            return {}
        result = self.db.execute(select(User).where(User.id.in_(student_ids)))
        return {user.id: user for user in result.scalars().all()}
