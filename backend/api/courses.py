"""
Course API endpoints
Public catalog browsing plus teacher course management
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, or_
from pydantic import BaseModel, Field
from typing import Optional, List

from core.database import get_db
from core.security import get_optional_user, require_roles
from models.user import User, UserRole
from models.course import Course, CourseCategory, CourseLevel
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.payment import Payment, PaymentStatus
from models.notification import NotificationType, NotificationCategory
from services import notification_service
from api.common import paginate, generate_slug_from_title, ensure_owner_or_admin, not_found

logger = logging.getLogger(__name__)

router = APIRouter()

teacher_or_admin = require_roles(UserRole.TEACHER, UserRole.ADMIN)


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class CreateCourseRequest(BaseModel):
    """Request to create a course"""
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=500, alias="shortDescription")
    price: float = Field(0.0, ge=0)
    currency: str = Field("INR", min_length=3, max_length=3)
    category: CourseCategory
    level: CourseLevel = CourseLevel.ALL_LEVELS
    duration: Optional[int] = Field(None, ge=0)
    language: str = "English"
    tags: List[str] = []
    thumbnail: Optional[str] = None

    class Config:
        populate_by_name = True


class UpdateCourseRequest(BaseModel):
    """Request to update a course; only provided fields change"""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=500, alias="shortDescription")
    price: Optional[float] = Field(None, ge=0)
    category: Optional[CourseCategory] = None
    level: Optional[CourseLevel] = None
    duration: Optional[int] = Field(None, ge=0)
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    thumbnail: Optional[str] = None

    class Config:
        populate_by_name = True


# ============================================
# Utility Functions
# ============================================

def unique_course_slug(db: Session, title: str) -> str:
    base = generate_slug_from_title(title) or "course"
    slug = base
    suffix = 1
    while db.query(Course.id).filter(Course.slug == slug).first():
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug


def _active_courses(db: Session):
    return db.query(Course).filter(Course.is_active == True)  # noqa: E712


def _catalog_order(query):
    return query.order_by(desc(Course.rating), desc(Course.students_enrolled), desc(Course.id))


def _get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course or not course.is_active:
        raise not_found("Course")
    return course


# ============================================
# Catalog Endpoints
# ============================================

@router.get("")
async def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[CourseCategory] = Query(None),
    level: Optional[CourseLevel] = Query(None),
    teacher: Optional[int] = Query(None, description="Teacher user id"),
    search: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    min_rating: Optional[float] = Query(None, ge=0, le=5, alias="minRating"),
    db: Session = Depends(get_db)
):
    """
    List active courses, best rated first

    - **category** / **level** / **teacher**: exact filters
    - **search**: matches title, description or short description
    - **minPrice** / **maxPrice** / **minRating**: range filters
    """
    query = _active_courses(db)

    if category:
        query = query.filter(Course.category == category)
    if level:
        query = query.filter(Course.level == level)
    if teacher:
        query = query.filter(Course.teacher_id == teacher)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(
            Course.title.like(term),
            Course.description.like(term),
            Course.short_description.like(term),
        ))
    if min_price is not None:
        query = query.filter(Course.price >= min_price)
    if max_price is not None:
        query = query.filter(Course.price <= max_price)
    if min_rating is not None:
        query = query.filter(Course.rating >= min_rating)

    courses, pagination = paginate(_catalog_order(query), page, limit)

    return {
        "success": True,
        "data": {"courses": [c.to_dict() for c in courses], "pagination": pagination},
    }


@router.get("/featured")
async def featured_courses(db: Session = Depends(get_db)):
    courses = _catalog_order(
        _active_courses(db).filter(Course.is_published == True)  # noqa: E712
    ).limit(8).all()
    return {"success": True, "data": {"courses": [c.to_dict() for c in courses]}}


@router.get("/popular")
async def popular_courses(db: Session = Depends(get_db)):
    courses = _active_courses(db).filter(
        Course.students_enrolled >= 10
    ).order_by(desc(Course.students_enrolled), desc(Course.rating)).limit(10).all()
    return {"success": True, "data": {"courses": [c.to_dict() for c in courses]}}


@router.get("/search")
async def search_courses(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db)
):
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search term is required"
        )

    term = f"%{q.strip()}%"
    query = _active_courses(db).filter(or_(
        Course.title.like(term),
        Course.description.like(term),
        Course.short_description.like(term),
    ))
    courses, pagination = paginate(_catalog_order(query), page, limit)

    return {
        "success": True,
        "data": {"courses": [c.to_dict() for c in courses], "pagination": pagination, "searchTerm": q.strip()},
    }


@router.get("/category/{category}")
async def courses_by_category(
    category: CourseCategory,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db)
):
    query = _active_courses(db).filter(Course.category == category)
    courses, pagination = paginate(_catalog_order(query), page, limit)
    return {"success": True, "data": {"courses": [c.to_dict() for c in courses], "pagination": pagination}}


@router.get("/teacher/my-courses")
async def my_courses(
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """Courses owned by the calling teacher, including unpublished ones"""
    courses = db.query(Course).filter(
        Course.teacher_id == current_user.id,
        Course.is_active == True,  # noqa: E712
    ).order_by(desc(Course.created_at)).all()

    data = []
    for course in courses:
        item = course.to_dict()
        item["batchCount"] = len(course.batches)
        data.append(item)

    return {"success": True, "data": {"courses": data}}


@router.get("/{course_id}")
async def get_course(
    course_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Course detail with its active batches and, for a signed-in user, isEnrolled"""
    course = _get_course_or_404(db, course_id)

    is_enrolled = False
    if current_user:
        is_enrolled = db.query(BatchEnrollment).join(Batch).filter(
            Batch.course_id == course.id,
            BatchEnrollment.student_id == current_user.id,
            BatchEnrollment.status == EnrollmentStatus.ACTIVE,
        ).first() is not None

    data = course.to_dict()
    data["batches"] = [b.to_dict() for b in course.batches if b.is_active]
    data["isEnrolled"] = is_enrolled

    return {"success": True, "data": {"course": data}}


# ============================================
# Course Management Endpoints
# ============================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    request: CreateCourseRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    course = Course(
        title=request.title,
        slug=unique_course_slug(db, request.title),
        description=request.description,
        short_description=request.short_description,
        price=request.price,
        currency=request.currency.upper(),
        category=request.category,
        level=request.level,
        duration=request.duration,
        language=request.language,
        tags=request.tags,
        thumbnail=request.thumbnail,
        teacher_id=current_user.id,
    )
    db.add(course)
    db.commit()
    db.refresh(course)

    logger.info(f"Course {course.id} '{course.title}' created by {current_user.email}")

    return {"success": True, "message": "Course created successfully", "data": {"course": course.to_dict()}}


@router.put("/{course_id}")
async def update_course(
    course_id: int,
    request: UpdateCourseRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    course = _get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.teacher_id, "You can only update your own courses")

    update_data = request.dict(exclude_unset=True, exclude_none=True)
    if "title" in update_data and update_data["title"] != course.title:
        course.slug = unique_course_slug(db, update_data["title"])
    for field, value in update_data.items():
        setattr(course, field, value)

    db.commit()
    db.refresh(course)

    return {"success": True, "message": "Course updated successfully", "data": {"course": course.to_dict()}}


@router.delete("/{course_id}")
async def delete_course(
    course_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """Soft delete: the course disappears from the catalog, its batches and payments stay"""
    course = _get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.teacher_id, "You can only delete your own courses")

    course.is_active = False
    db.commit()

    logger.info(f"Course {course.id} deactivated by {current_user.email}")
    return {"success": True, "message": "Course deleted successfully"}


@router.put("/{course_id}/publish")
async def toggle_publish(
    course_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    course = _get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.teacher_id, "You can only publish your own courses")

    course.is_published = not course.is_published
    state = "published" if course.is_published else "unpublished"

    notification_service.create_notification(
        db,
        recipient_id=course.teacher_id,
        title=f"Course {state.capitalize()}",
        message=f'Your course "{course.title}" has been {state}.',
        type=NotificationType.COURSE_UPDATE,
        category=NotificationCategory.ACADEMIC,
        related_course_id=course.id,
    )

    db.commit()
    db.refresh(course)

    return {"success": True, "message": f"Course {state} successfully", "data": {"course": course.to_dict()}}


@router.get("/{course_id}/analytics")
async def course_analytics(
    course_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    course = _get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.teacher_id, "You can only view analytics for your own courses")

    batches = course.batches
    total_batches = len(batches)
    total_students = sum(b.enrolled_count() for b in batches)
    revenue = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(
        Payment.course_id == course.id,
        Payment.status == PaymentStatus.PAID,
    ).scalar()

    return {
        "success": True,
        "data": {
            "courseId": course.id,
            "title": course.title,
            "totalBatches": total_batches,
            "totalStudents": total_students,
            "averageBatchSize": round(total_students / total_batches, 2) if total_batches else 0,
            "revenue": round(float(revenue or 0.0), 2),
            "rating": course.rating,
            "totalRatings": course.total_ratings,
        },
    }
