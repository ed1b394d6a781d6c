import os
from datetime import date
from typing import Generator

import pytest

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.attendance import AttendanceRecord, AttendanceStatus  # noqa: E402
from app.models.batch import Batch  # noqa: E402
from app.models.monthly_exam import IndividualExam, MonthlyExam, MonthlyMark  # noqa: E402
from app.models.sms import SystemSettings  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402


@pytest.fixture
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db
        db.flush()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager: lifespan shutdown would dispose the
    # shared in-memory connection
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


# ==========================================
# Factories
# ==========================================

@pytest.fixture
def make_batch(db: Session):
    counter = {"n": 0}

    def factory(name: str = "Batch A", subject: str = "math") -> Batch:
        counter["n"] += 1
        batch = Batch(name=name, subject=subject, batch_code=f"B{counter['n']:03d}")
        db.add(batch)
        db.flush()
        return batch

    return factory


@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def factory(
        role: UserRole = UserRole.STUDENT,
        batch: Batch | None = None,
        first_name: str | None = None,
        phone_number: str | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            username=f"user{counter['n']}",
            password_hash="not-a-real-hash",
            first_name=first_name or f"User{counter['n']}",
            role=role,
            phone_number=phone_number,
            batch_id=batch.id if batch else None,
        )
        db.add(user)
        db.flush()
        return user

    return factory


@pytest.fixture
def make_exam(db: Session):
    def factory(
        batch: Batch,
        month: int = 3,
        year: int = 2026,
        title: str = "March Monthly",
        component_marks: tuple[int, ...] = (50, 50),
    ) -> tuple[MonthlyExam, list[IndividualExam]]:
        exam = MonthlyExam(batch_id=batch.id, month=month, year=year, title=title)
        db.add(exam)
        db.flush()
        components = []
        for i, total in enumerate(component_marks, start=1):
            component = IndividualExam(
                monthly_exam_id=exam.id,
                name=f"Test {i}",
                total_marks=total,
            )
            db.add(component)
            components.append(component)
        db.flush()
        return exam, components

    return factory


@pytest.fixture
def add_mark(db: Session):
    def factory(exam: MonthlyExam, component: IndividualExam, student: User, marks: int) -> MonthlyMark:
        mark = MonthlyMark(
            monthly_exam_id=exam.id,
            individual_exam_id=component.id,
            student_id=student.id,
            obtained_marks=marks,
        )
        db.add(mark)
        db.flush()
        return mark

    return factory


@pytest.fixture
def add_present_days(db: Session):
    def factory(student: User, batch: Batch, year: int, month: int, days: int) -> None:
        for day in range(1, days + 1):
            db.add(
                AttendanceRecord(
                    student_id=student.id,
                    batch_id=batch.id,
                    attendance_date=date(year, month, day),
                    status=AttendanceStatus.PRESENT,
                )
            )
        db.flush()

    return factory


@pytest.fixture
def sms_settings(db: Session):
    def factory(balance: int, api_key: str | None = "test-key") -> SystemSettings:
        row = SystemSettings(
            sms_count=balance,
            sms_api_key=api_key,
            sms_sender_id="8800000000",
            sms_api_url="http://sms.test/api/smsapi",
        )
        db.add(row)
        db.flush()
        return row

    return factory


@pytest.fixture
def auth_headers():
    def factory(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.username, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return factory
