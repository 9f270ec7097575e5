"""
Batch models - scheduled course offerings and their enrollments
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float, ForeignKey, JSON, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timedelta
import enum

from .base import Base


class EnrollmentType(str, enum.Enum):
    """How students get into a batch"""
    OPEN = "open"
    INVITE_ONLY = "invite_only"
    APPROVAL_REQUIRED = "approval_required"


class EnrollmentStatus(str, enum.Enum):
    """Lifecycle of a student's seat in a batch"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
    DROPPED = "dropped"


# Keys accepted by the batch settings endpoint. isActive maps onto its own column.
BATCH_SETTING_KEYS = (
    "isActive",
    "isPublished",
    "allowWaitlist",
    "autoEnrollment",
    "notificationsEnabled",
    "recordingEnabled",
    "chatEnabled",
)

DEFAULT_BATCH_SETTINGS = {
    "isPublished": False,
    "allowWaitlist": False,
    "autoEnrollment": False,
    "notificationsEnabled": True,
    "recordingEnabled": True,
    "chatEnabled": True,
}


def _default_end_date():
    return datetime.utcnow() + timedelta(days=30)


class Batch(Base):
    """
    A scheduled offering of a course with an assigned teacher.
    The class schedule and shared materials are kept as JSON lists on the row.
    """
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    course_id = Column("courseId", Integer, ForeignKey("courses.id"), nullable=False, index=True)
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by = Column("createdBy", Integer, ForeignKey("users.id"), nullable=True)

    # Enrollment rules
    student_limit = Column("studentLimit", Integer, default=30, nullable=False)
    enrollment_type = Column("enrollmentType", SQLEnum(EnrollmentType), default=EnrollmentType.OPEN, nullable=False)
    enrollment_fee = Column("enrollmentFee", Float, default=0.0, nullable=False)

    # Dates
    start_date = Column("startDate", DateTime, default=datetime.utcnow, nullable=False)
    end_date = Column("endDate", DateTime, default=_default_end_date, nullable=False)

    # Content
    schedule = Column(JSON, default=list, nullable=False)
    materials = Column(JSON, default=list, nullable=False)

    # Settings
    is_active = Column("isActive", Boolean, default=True, nullable=False)
    settings = Column(JSON, default=lambda: dict(DEFAULT_BATCH_SETTINGS), nullable=False)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    course = relationship("Course", back_populates="batches")
    teacher = relationship("User", foreign_keys=[teacher_id])
    enrollments = relationship("BatchEnrollment", back_populates="batch", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Batch(id={self.id}, name={self.name}, course_id={self.course_id})>"

    def active_enrollments(self):
        return [e for e in self.enrollments if e.status == EnrollmentStatus.ACTIVE]

    def enrolled_count(self) -> int:
        return len(self.active_enrollments())

    def is_full(self) -> bool:
        return self.enrolled_count() >= self.student_limit

    def settings_dict(self):
        merged = dict(DEFAULT_BATCH_SETTINGS)
        merged.update(self.settings or {})
        merged["isActive"] = self.is_active
        return merged

    def to_dict(self, include_students: bool = False, include_contact: bool = True):
        """include_contact=False leaves student emails out of the roster"""
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "courseId": self.course_id,
            "course": {"id": self.course.id, "title": self.course.title} if self.course else None,
            "teacherId": self.teacher_id,
            "teacher": self.teacher.to_summary() if self.teacher else None,
            "studentLimit": self.student_limit,
            "enrollmentType": self.enrollment_type.value,
            "enrollmentFee": self.enrollment_fee,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "schedule": self.schedule or [],
            "materials": self.materials or [],
            "isActive": self.is_active,
            "settings": self.settings_dict(),
            "enrolledCount": self.enrolled_count(),
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_students:
            students = []
            for e in self.active_enrollments():
                if not e.student:
                    continue
                student = e.student.to_summary()
                if not include_contact:
                    student.pop("email")
                student["enrolledAt"] = e.enrolled_at.isoformat() if e.enrolled_at else None
                students.append(student)
            data["students"] = students
        return data


class BatchEnrollment(Base):
    """
    A student's seat in a batch.
    One row per (batch, student); dropping a student flips the status instead of deleting.
    """
    __tablename__ = "batch_enrollments"
    __table_args__ = (
        UniqueConstraint("batchId", "studentId", name="uq_batch_enrollment"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column("batchId", Integer, ForeignKey("batches.id"), nullable=False, index=True)
    student_id = Column("studentId", Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.ACTIVE, nullable=False)
    progress = Column(Integer, default=0, nullable=False)  # 0-100

    enrolled_at = Column("enrolledAt", DateTime, default=func.now(), nullable=False)
    completed_at = Column("completedAt", DateTime, nullable=True)

    # Relationships
    batch = relationship("Batch", back_populates="enrollments")
    student = relationship("User")

    def __repr__(self):
        return f"<BatchEnrollment(batch_id={self.batch_id}, student_id={self.student_id}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "batchId": self.batch_id,
            "studentId": self.student_id,
            "status": self.status.value,
            "progress": self.progress,
            "enrolledAt": self.enrolled_at.isoformat() if self.enrolled_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
