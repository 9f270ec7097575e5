"""
Pytest configuration and fixtures
Provides test database, test client, and common test utilities
"""
import os
import sys

# Configure before any backend import reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")

import pytest
from datetime import datetime, timedelta
from typing import Generator
from sqlalchemy.orm import Session
from fastapi.testclient import TestClient

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app
from core.database import get_db, engine, SessionLocal
from core.security import hash_password, create_tokens_for_user
from models import Base
from models.user import User, UserRole, ApprovalStatus
from models.course import Course, CourseCategory
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.payment import Payment, PaymentStatus, PaymentGateway
from workers.celery_app import celery_app

TEST_PASSWORD = "Password123"

# Deliveries run inline; without SMTP/FCM credentials the tasks skip sending
celery_app.conf.task_always_eager = True


@pytest.fixture(scope="session")
def test_engine():
    """
    Create the in-memory schema once for the entire test session
    """
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_db(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for each test
    Every table is emptied afterwards
    """
    session = SessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """
    Create FastAPI test client with test database
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# Helper functions for tests
def get_auth_header(user: User) -> dict:
    """Helper to create authorization header"""
    return {"Authorization": f"Bearer {create_tokens_for_user(user)['token']}"}


def create_test_user_in_db(db: Session, email: str, name: str, role: UserRole = UserRole.STUDENT,
                           **fields) -> User:
    """Helper to create a user in the database"""
    user = User(
        email=email,
        name=name,
        password=hash_password(TEST_PASSWORD),
        role=role,
        **fields
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def enroll_student(db: Session, batch: Batch, student: User) -> BatchEnrollment:
    enrollment = BatchEnrollment(batch_id=batch.id, student_id=student.id, status=EnrollmentStatus.ACTIVE)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


@pytest.fixture
def test_student(test_db: Session) -> User:
    return create_test_user_in_db(test_db, "student@example.com", "Test Student")


@pytest.fixture
def test_teacher(test_db: Session) -> User:
    """
    Create an approved teacher
    """
    return create_test_user_in_db(
        test_db, "teacher@example.com", "Test Teacher", UserRole.TEACHER,
        approval_status=ApprovalStatus.APPROVED,
    )


@pytest.fixture
def test_admin(test_db: Session) -> User:
    return create_test_user_in_db(test_db, "admin@example.com", "Test Admin", UserRole.ADMIN)


@pytest.fixture
def student_headers(test_student: User) -> dict:
    return get_auth_header(test_student)


@pytest.fixture
def teacher_headers(test_teacher: User) -> dict:
    return get_auth_header(test_teacher)


@pytest.fixture
def admin_headers(test_admin: User) -> dict:
    return get_auth_header(test_admin)


@pytest.fixture
def test_course(test_db: Session, test_teacher: User) -> Course:
    """
    Create a published course owned by the test teacher
    """
    course = Course(
        title="Algebra Foundations",
        slug="algebra-foundations",
        description="Linear equations, inequalities and functions for beginners",
        price=2000.0,
        category=CourseCategory.MATHEMATICS,
        teacher_id=test_teacher.id,
        is_published=True,
    )
    test_db.add(course)
    test_db.commit()
    test_db.refresh(course)
    return course


@pytest.fixture
def test_batch(test_db: Session, test_course: Course, test_teacher: User) -> Batch:
    """
    Create a free, open batch for the test course
    """
    batch = Batch(
        name="Algebra Morning Batch",
        description="Weekday mornings",
        course_id=test_course.id,
        teacher_id=test_teacher.id,
        created_by=test_teacher.id,
        student_limit=2,
        enrollment_fee=0.0,
        start_date=datetime.utcnow(),
        end_date=datetime.utcnow() + timedelta(days=90),
    )
    test_db.add(batch)
    test_db.commit()
    test_db.refresh(batch)
    return batch


@pytest.fixture
def paid_batch(test_db: Session, test_course: Course, test_teacher: User) -> Batch:
    """
    Create a batch with a 1500 INR enrollment fee
    """
    batch = Batch(
        name="Algebra Evening Batch",
        course_id=test_course.id,
        teacher_id=test_teacher.id,
        created_by=test_teacher.id,
        student_limit=30,
        enrollment_fee=1500.0,
    )
    test_db.add(batch)
    test_db.commit()
    test_db.refresh(batch)
    return batch


def create_payment(db: Session, batch: Batch, student: User, status: PaymentStatus = PaymentStatus.PAID,
                   amount: float = None, rate: float = 0.4, **fields) -> Payment:
    """Helper to insert a payment with a consistent commission split"""
    amount = amount if amount is not None else batch.enrollment_fee
    platform_fee = round(amount * rate, 2)
    payment = Payment(
        order_id=f"order_{batch.id}_{student.id}_{db.query(Payment).count() + 1}",
        student_id=student.id,
        teacher_id=batch.teacher_id,
        batch_id=batch.id,
        course_id=batch.course_id,
        amount=amount,
        payment_gateway=fields.pop("payment_gateway", PaymentGateway.RAZORPAY),
        commission_rate=rate,
        platform_fee=platform_fee,
        teacher_earnings=round(amount - platform_fee, 2),
        status=status,
        paid_at=datetime.utcnow() if status == PaymentStatus.PAID else None,
        **fields
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment
