#!/usr/bin/env python3
"""
Database Seeding Script
Populates the database with demo users, courses, batches and a live class for development
"""
import sys
import os
import uuid
from datetime import datetime, timedelta

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from core.config import settings
from core.security import hash_password
from models import Base
from models.user import User, UserRole, ApprovalStatus
from models.course import Course, CourseCategory, CourseLevel
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.live_session import LiveSession, LiveSessionStatus

DEMO_PASSWORD = "Password123"


# ANSI color codes
class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_header():
    """Print script header"""
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  Database Seeding Script - Demo Data Population{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.RESET}\n")


def print_success(message: str):
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}")


def print_info(message: str):
    print(f"{Colors.BLUE}ℹ{Colors.RESET} {message}")


def print_warning(message: str):
    print(f"{Colors.YELLOW}⚠{Colors.RESET} {message}")


def print_error(message: str):
    print(f"{Colors.RED}✗{Colors.RESET} {message}")


def create_users(session):
    """Create demo users (1 admin, 2 teachers, 3 students)"""
    print(f"\n{Colors.BOLD}Creating Users...{Colors.RESET}")

    users_data = [
        {"email": "admin@genzed.com", "name": "Admin User", "role": UserRole.ADMIN},
        {"email": "priya.teacher@genzed.com", "name": "Priya Sharma", "role": UserRole.TEACHER},
        {"email": "arjun.teacher@genzed.com", "name": "Arjun Mehta", "role": UserRole.TEACHER,
         "commission_rate": 0.3},
        {"email": "student1@genzed.com", "name": "Rohan Verma", "role": UserRole.STUDENT},
        {"email": "student2@genzed.com", "name": "Ananya Iyer", "role": UserRole.STUDENT},
        {"email": "student3@genzed.com", "name": "Kabir Singh", "role": UserRole.STUDENT},
    ]

    created_users = []

    for user_data in users_data:
        existing = session.query(User).filter_by(email=user_data["email"]).first()

        if existing:
            print_warning(f"User already exists: {user_data['email']}")
            created_users.append(existing)
        else:
            user = User(
                password=hash_password(DEMO_PASSWORD),
                approval_status=ApprovalStatus.APPROVED,
                email_verified=True,
                **user_data
            )
            session.add(user)
            session.flush()
            created_users.append(user)
            print_success(f"Created user: {user_data['email']} ({user_data['role'].value})")

    session.commit()
    return created_users


def create_courses(session, teachers):
    """Create published courses, one set per teacher"""
    print(f"\n{Colors.BOLD}Creating Courses...{Colors.RESET}")

    courses_data = [
        {
            "title": "Class 10 Mathematics Complete",
            "slug": "class-10-mathematics-complete",
            "description": "Algebra, geometry, trigonometry and statistics for the Class 10 board exam.",
            "category": CourseCategory.MATHEMATICS,
            "level": CourseLevel.INTERMEDIATE,
            "price": 2999.0,
            "duration": 120,
            "tags": ["cbse", "board-exam", "algebra"],
            "teacher": teachers[0],
        },
        {
            "title": "Physics Foundations",
            "slug": "physics-foundations",
            "description": "Motion, forces, energy and electricity explained with worked problems.",
            "category": CourseCategory.PHYSICS,
            "level": CourseLevel.BEGINNER,
            "price": 1999.0,
            "duration": 80,
            "tags": ["mechanics", "electricity"],
            "teacher": teachers[0],
        },
        {
            "title": "Python Programming for Beginners",
            "slug": "python-programming-for-beginners",
            "description": "Variables, control flow, functions and small projects in Python.",
            "category": CourseCategory.PROGRAMMING,
            "level": CourseLevel.BEGINNER,
            "price": 0.0,
            "duration": 40,
            "tags": ["python", "coding"],
            "teacher": teachers[1],
        },
    ]

    created_courses = []

    for course_data in courses_data:
        existing = session.query(Course).filter_by(slug=course_data["slug"]).first()

        if existing:
            print_warning(f"Course already exists: {course_data['title']}")
            created_courses.append(existing)
        else:
            teacher = course_data.pop("teacher")
            course = Course(teacher_id=teacher.id, is_published=True, **course_data)
            session.add(course)
            session.flush()
            created_courses.append(course)
            print_success(f"Created course: {course.title} ({course.category.value})")

    session.commit()
    return created_courses


def create_batches(session, courses, students):
    """Create one batch per course and enroll the demo students in the free one"""
    print(f"\n{Colors.BOLD}Creating Batches...{Colors.RESET}")

    created_batches = []
    now = datetime.utcnow()

    for course in courses:
        name = f"{course.title} - Evening Batch"
        existing = session.query(Batch).filter_by(name=name, course_id=course.id).first()

        if existing:
            print_warning(f"Batch already exists: {name}")
            created_batches.append(existing)
            continue

        batch = Batch(
            name=name,
            description=f"Weekday evening batch for {course.title}",
            course_id=course.id,
            teacher_id=course.teacher_id,
            created_by=course.teacher_id,
            student_limit=settings.DEFAULT_STUDENT_LIMIT,
            enrollment_fee=course.price,
            start_date=now,
            end_date=now + timedelta(days=90),
            schedule=[{
                "id": uuid.uuid4().hex,
                "topic": "Orientation",
                "startTime": (now + timedelta(days=1)).isoformat(),
                "endTime": (now + timedelta(days=1, hours=1)).isoformat(),
                "duration": 60,
                "type": "live",
                "status": "scheduled",
                "createdAt": now.isoformat(),
            }],
        )
        session.add(batch)
        session.flush()
        created_batches.append(batch)
        print_success(f"Created batch: {name} (fee ₹{batch.enrollment_fee:.0f})")

        if batch.enrollment_fee == 0:
            for student in students:
                session.add(BatchEnrollment(batch_id=batch.id, student_id=student.id, status=EnrollmentStatus.ACTIVE))
            course.students_enrolled = len(students)
            print_success(f"Enrolled {len(students)} students in {name}")

    session.commit()
    return created_batches


def create_live_sessions(session, batches):
    """Schedule a live class tomorrow for every batch that has none"""
    print(f"\n{Colors.BOLD}Creating Live Sessions...{Colors.RESET}")

    count = 0
    start = (datetime.utcnow() + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)

    for batch in batches:
        if session.query(LiveSession).filter_by(batch_id=batch.id).first():
            continue

        meeting_id = f"lms_seed_{batch.id}"
        session.add(LiveSession(
            batch_id=batch.id,
            teacher_id=batch.teacher_id,
            title=f"{batch.name}: Introduction",
            meeting_id=meeting_id,
            meeting_link=f"https://meet.google.com/generated-{meeting_id}",
            start_time=start,
            end_time=start + timedelta(minutes=60),
            duration=60,
            status=LiveSessionStatus.SCHEDULED,
        ))
        count += 1

    session.commit()

    if count > 0:
        print_success(f"Created {count} live sessions")
    else:
        print_warning("All live sessions already exist")


def seed_database():
    """Main seeding function"""
    print_header()

    try:
        print_info(f"Connecting to database: {settings.DATABASE_URL.split('@')[-1]}")
        engine = create_engine(settings.DATABASE_URL)
        Base.metadata.create_all(bind=engine)
        SessionLocal = sessionmaker(bind=engine)
        session = SessionLocal()

        users = create_users(session)
        teachers = [u for u in users if u.role == UserRole.TEACHER]
        students = [u for u in users if u.role == UserRole.STUDENT]

        courses = create_courses(session, teachers)
        batches = create_batches(session, courses, students)
        create_live_sessions(session, batches)

        # Summary
        print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.RESET}")
        print(f"{Colors.BOLD}{Colors.GREEN}✓ Database seeding completed successfully!{Colors.RESET}\n")

        print(f"{Colors.BOLD}Summary:{Colors.RESET}")
        print(f"  • Users: {len(users)} (1 admin, {len(teachers)} teachers, {len(students)} students)")
        print(f"  • Courses: {len(courses)}")
        print(f"  • Batches: {len(batches)}")
        print(f"  • Live sessions: {session.query(LiveSession).count()}")

        print(f"\n{Colors.BOLD}Demo Credentials (password: {DEMO_PASSWORD}):{Colors.RESET}")
        print(f"  Admin:   {Colors.CYAN}admin@genzed.com{Colors.RESET}")
        print(f"  Teacher: {Colors.CYAN}priya.teacher@genzed.com{Colors.RESET}")
        print(f"  Student: {Colors.CYAN}student1@genzed.com{Colors.RESET}\n")

        session.close()
        engine.dispose()

    except Exception as e:
        print_error(f"Seeding failed: {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


def main():
    """Entry point"""
    try:
        seed_database()
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Seeding interrupted by user.{Colors.RESET}\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
