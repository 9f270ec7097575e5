"""
Course catalog model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from .base import Base


class CourseCategory(str, enum.Enum):
    """Subject areas offered on the platform"""
    MATHEMATICS = "Mathematics"
    PHYSICS = "Physics"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"
    ENGLISH = "English"
    COMPUTER_SCIENCE = "Computer Science"
    ECONOMICS = "Economics"
    HISTORY = "History"
    GEOGRAPHY = "Geography"
    ART = "Art"
    MUSIC = "Music"
    PROGRAMMING = "Programming"
    OTHER = "Other"


class CourseLevel(str, enum.Enum):
    """Course difficulty"""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    ALL_LEVELS = "All Levels"


class Course(Base):
    """
    A course owned by a teacher.
    Courses are offered to students through one or more batches.
    """
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Basic information
    title = Column(String(200), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    short_description = Column("shortDescription", String(500), nullable=True)
    thumbnail = Column(Text, nullable=True)

    # Pricing
    price = Column(Float, default=0.0, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)

    # Classification
    category = Column(SQLEnum(CourseCategory), nullable=False, index=True)
    level = Column(SQLEnum(CourseLevel), default=CourseLevel.ALL_LEVELS, nullable=False)
    duration = Column(Integer, nullable=True)  # hours
    language = Column(String(50), default="English", nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    # Ratings and enrollment counters
    rating = Column(Float, default=0.0, nullable=False)
    total_ratings = Column("totalRatings", Integer, default=0, nullable=False)
    students_enrolled = Column("studentsEnrolled", Integer, default=0, nullable=False)
    students_completed = Column("studentsCompleted", Integer, default=0, nullable=False)

    # Visibility
    is_active = Column("isActive", Boolean, default=True, nullable=False)
    is_published = Column("isPublished", Boolean, default=False, nullable=False)

    # Ownership
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    teacher = relationship("User")
    batches = relationship("Batch", back_populates="course")

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title}, teacher_id={self.teacher_id})>"

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "shortDescription": self.short_description,
            "thumbnail": self.thumbnail,
            "price": self.price,
            "currency": self.currency,
            "category": self.category.value,
            "level": self.level.value,
            "duration": self.duration,
            "language": self.language,
            "tags": self.tags or [],
            "rating": self.rating,
            "totalRatings": self.total_ratings,
            "studentsEnrolled": self.students_enrolled,
            "studentsCompleted": self.students_completed,
            "isActive": self.is_active,
            "isPublished": self.is_published,
            "teacherId": self.teacher_id,
            "teacher": self.teacher.to_summary() if self.teacher else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
