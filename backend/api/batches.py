"""
Batch API endpoints
Batches, enrollment, class schedule, shared materials and batch settings
"""
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy import desc, or_
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta
import enum

from core.config import settings
from core.database import get_db
from core.security import get_current_user, require_roles
from models.user import User, UserRole
from models.course import Course, CourseCategory, CourseLevel
from models.batch import Batch, BatchEnrollment, EnrollmentType, EnrollmentStatus, BATCH_SETTING_KEYS
from models.notification import NotificationType, NotificationCategory
from services import notification_service
from services.enrollment_service import enroll_student, get_enrollment, is_enrolled, has_paid
from api.common import paginate, ensure_owner_or_admin, not_found
from api.courses import unique_course_slug

logger = logging.getLogger(__name__)

router = APIRouter()

teacher_or_admin = require_roles(UserRole.TEACHER, UserRole.ADMIN)

# Free-text subject -> catalog category, used when a batch is created without a course
SUBJECT_CATEGORY_MAP = {
    "mathematics": CourseCategory.MATHEMATICS,
    "math": CourseCategory.MATHEMATICS,
    "maths": CourseCategory.MATHEMATICS,
    "physics": CourseCategory.PHYSICS,
    "chemistry": CourseCategory.CHEMISTRY,
    "biology": CourseCategory.BIOLOGY,
    "english": CourseCategory.ENGLISH,
    "computer science": CourseCategory.COMPUTER_SCIENCE,
    "cs": CourseCategory.COMPUTER_SCIENCE,
    "programming": CourseCategory.PROGRAMMING,
    "java": CourseCategory.PROGRAMMING,
    "python": CourseCategory.PROGRAMMING,
    "javascript": CourseCategory.PROGRAMMING,
    "economics": CourseCategory.ECONOMICS,
    "history": CourseCategory.HISTORY,
    "geography": CourseCategory.GEOGRAPHY,
    "art": CourseCategory.ART,
    "music": CourseCategory.MUSIC,
}


def category_for_subject(subject: str) -> CourseCategory:
    return SUBJECT_CATEGORY_MAP.get(subject.strip().lower(), CourseCategory.OTHER)


class MaterialType(str, enum.Enum):
    DOCUMENT = "document"
    VIDEO = "video"
    LINK = "link"
    ASSIGNMENT = "assignment"


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class CreateBatchRequest(BaseModel):
    """Request to create a batch, optionally creating its course from a subject"""
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    course_id: Optional[int] = Field(None, alias="courseId")
    subject: Optional[str] = Field(None, max_length=100)
    grade: Optional[str] = Field(None, max_length=20)
    teacher_id: Optional[int] = Field(None, alias="teacherId")
    student_limit: int = Field(settings.DEFAULT_STUDENT_LIMIT, ge=1, le=100, alias="studentLimit")
    enrollment_type: EnrollmentType = Field(EnrollmentType.OPEN, alias="enrollmentType")
    enrollment_fee: float = Field(0.0, ge=0, alias="enrollmentFee")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    is_active: bool = Field(True, alias="isActive")
    student_ids: List[int] = Field([], alias="studentIds")

    class Config:
        populate_by_name = True


class UpdateBatchRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = None
    student_limit: Optional[int] = Field(None, ge=1, le=100, alias="studentLimit")
    enrollment_type: Optional[EnrollmentType] = Field(None, alias="enrollmentType")
    enrollment_fee: Optional[float] = Field(None, ge=0, alias="enrollmentFee")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True


class EnrollRequest(BaseModel):
    student_id: Optional[int] = Field(None, alias="studentId")

    class Config:
        populate_by_name = True


class ScheduleSessionRequest(BaseModel):
    """One entry of the batch timetable"""
    topic: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: datetime = Field(..., alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    meeting_link: Optional[str] = Field(None, alias="meetingLink")
    duration: int = Field(60, ge=1, le=480)
    type: str = "live"
    status: str = "scheduled"

    @validator("end_time", always=True)
    def default_end_time(cls, v, values):
        if v is None and values.get("start_time"):
            return values["start_time"] + timedelta(hours=1)
        return v

    class Config:
        populate_by_name = True


class UpdateScheduleSessionRequest(BaseModel):
    topic: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    meeting_link: Optional[str] = Field(None, alias="meetingLink")
    duration: Optional[int] = Field(None, ge=1, le=480)
    type: Optional[str] = None
    status: Optional[str] = None

    class Config:
        populate_by_name = True


class MaterialRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: MaterialType = MaterialType.DOCUMENT
    url: str = Field(..., min_length=1)
    file_size: Optional[int] = Field(None, ge=0, alias="fileSize")

    class Config:
        populate_by_name = True


class UpdateMaterialRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[MaterialType] = None
    url: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0, alias="fileSize")

    class Config:
        populate_by_name = True


# JSON keys used for schedule/material entries, by request field name
SCHEDULE_FIELDS = {
    "topic": "topic",
    "description": "description",
    "start_time": "startTime",
    "end_time": "endTime",
    "meeting_link": "meetingLink",
    "duration": "duration",
    "type": "type",
    "status": "status",
}

MATERIAL_FIELDS = {
    "title": "title",
    "description": "description",
    "type": "type",
    "url": "url",
    "file_size": "fileSize",
}


# ============================================
# Utility Functions
# ============================================

def _get_batch_or_404(db: Session, batch_id: int) -> Batch:
    batch = db.query(Batch).filter(Batch.id == batch_id).first()
    if not batch:
        raise not_found("Batch")
    return batch


def _ensure_can_view_content(db: Session, batch: Batch, user: User):
    """Schedule and materials are visible to admins, the batch teacher and enrolled students"""
    if user.is_admin() or user.id == batch.teacher_id:
        return
    if user.is_student() and is_enrolled(db, batch.id, user.id):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Access denied. You are not a member of this batch."
    )


def _to_json_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _entry_from_request(request: BaseModel, fields: Dict[str, str], exclude_unset: bool = False) -> Dict[str, Any]:
    # Partial updates skip explicit nulls so required keys keep their values
    data = request.dict(exclude_unset=exclude_unset, exclude_none=exclude_unset)
    return {fields[name]: _to_json_value(value) for name, value in data.items() if name in fields}


def _find_entry(entries: List[Dict[str, Any]], entry_id: str, resource: str) -> int:
    for index, entry in enumerate(entries):
        if entry.get("id") == entry_id:
            return index
    raise not_found(resource)


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


# ============================================
# Batch Endpoints
# ============================================

@router.get("")
async def list_batches(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    course_id: Optional[int] = Query(None, alias="courseId"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List batches visible to the caller
    Admins see every batch, teachers their own, students the active ones
    """
    query = db.query(Batch)

    if current_user.is_teacher():
        query = query.filter(Batch.teacher_id == current_user.id)
    elif current_user.is_student():
        query = query.filter(Batch.is_active == True)  # noqa: E712

    if course_id:
        query = query.filter(Batch.course_id == course_id)
    if teacher_id:
        query = query.filter(Batch.teacher_id == teacher_id)
    if is_active is not None:
        query = query.filter(Batch.is_active == is_active)

    batches, pagination = paginate(query.order_by(desc(Batch.created_at), desc(Batch.id)), page, limit)

    return {
        "success": True,
        "data": {"batches": [b.to_dict() for b in batches], "pagination": pagination},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_batch(
    request: CreateBatchRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """
    Create a batch

    Without a courseId a default course is created from `subject`.
    Admins may assign any teacher; teachers always teach their own batches.
    """
    teacher_id = request.teacher_id or current_user.id
    if not current_user.is_admin() and teacher_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create batches for yourself"
        )

    teacher = db.query(User).filter(User.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid teacher ID")
    if teacher.role not in (UserRole.TEACHER, UserRole.ADMIN):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid teacher role")

    start_date = request.start_date or datetime.utcnow()
    end_date = request.end_date or start_date + timedelta(days=30)
    if end_date <= start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End date must be after start date")

    if request.course_id:
        course = db.query(Course).filter(Course.id == request.course_id).first()
        if not course:
            raise not_found("Course")
        if not current_user.is_admin() and course.teacher_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only create batches for your own courses"
            )
    else:
        if not request.subject:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Subject is required when no courseId is provided"
            )
        grade = f" - Grade {request.grade}" if request.grade else ""
        title = f"{request.subject}{grade} - {request.name}"[:200]
        course = Course(
            title=title,
            slug=unique_course_slug(db, title),
            description=request.description or f"Course for {request.name} batch",
            category=category_for_subject(request.subject),
            level=CourseLevel.ALL_LEVELS,
            price=0.0,
            language="English",
            is_published=True,
            teacher_id=teacher.id,
        )
        db.add(course)
        db.flush()
        logger.info(f"Auto-created course {course.id} for batch {request.name}")

    batch = Batch(
        name=request.name,
        description=request.description,
        course_id=course.id,
        teacher_id=teacher.id,
        created_by=current_user.id,
        student_limit=request.student_limit,
        enrollment_type=request.enrollment_type,
        enrollment_fee=request.enrollment_fee,
        start_date=start_date,
        end_date=end_date,
        is_active=request.is_active,
        schedule=[],
        materials=[],
    )
    db.add(batch)
    db.flush()

    for student_id in dict.fromkeys(request.student_ids):
        student = db.query(User).filter(User.id == student_id, User.role == UserRole.STUDENT).first()
        if not student:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid student ID: {student_id}")
        if batch.is_full():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch is full")
        enroll_student(db, batch, student_id)

    db.commit()
    db.refresh(batch)

    logger.info(f"Batch {batch.id} '{batch.name}' created by {current_user.email}")

    return {
        "success": True,
        "message": "Batch created successfully",
        "data": {"batch": batch.to_dict(include_students=True)},
    }


@router.get("/my-batches")
async def my_batches(
    current_user: User = Depends(require_roles(UserRole.STUDENT)),
    db: Session = Depends(get_db)
):
    """Batches the calling student is actively enrolled in"""
    enrollments = db.query(BatchEnrollment).filter(
        BatchEnrollment.student_id == current_user.id,
        BatchEnrollment.status == EnrollmentStatus.ACTIVE,
    ).order_by(desc(BatchEnrollment.enrolled_at)).all()

    return {
        "success": True,
        "data": {"batches": [{**e.batch.to_dict(), "enrollment": e.to_dict()} for e in enrollments]},
    }


@router.get("/teacher/my-batches")
async def teacher_batches(
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batches = db.query(Batch).filter(Batch.teacher_id == current_user.id).order_by(desc(Batch.created_at)).all()
    return {"success": True, "data": {"batches": [b.to_dict(include_students=True) for b in batches]}}


@router.get("/upcoming-sessions")
async def upcoming_sessions(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Future timetable entries across the caller's batches, soonest first"""
    if current_user.is_student():
        batches = db.query(Batch).join(BatchEnrollment).filter(
            BatchEnrollment.student_id == current_user.id,
            BatchEnrollment.status == EnrollmentStatus.ACTIVE,
            Batch.is_active == True,  # noqa: E712
        ).all()
    elif current_user.is_teacher():
        batches = db.query(Batch).filter(Batch.teacher_id == current_user.id, Batch.is_active == True).all()  # noqa: E712
    else:
        batches = db.query(Batch).filter(Batch.is_active == True).all()  # noqa: E712

    now = datetime.utcnow()
    sessions = []
    for batch in batches:
        for entry in batch.schedule or []:
            start = _parse_iso(entry.get("startTime"))
            if start and start > now:
                sessions.append({**entry, "batchId": batch.id, "batchName": batch.name, "_start": start})

    sessions.sort(key=lambda s: s["_start"])
    for session in sessions:
        session.pop("_start")

    return {"success": True, "data": {"sessions": sessions[:limit]}}


@router.get("/{batch_id}")
async def get_batch(
    batch_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    # Classmates see each other by name; contact details stay with the owner and admins
    data = batch.to_dict(
        include_students=True,
        include_contact=current_user.is_admin() or current_user.id == batch.teacher_id,
    )
    if current_user.is_student():
        data["isEnrolled"] = is_enrolled(db, batch.id, current_user.id)
    return {"success": True, "data": {"batch": data}}


@router.put("/{batch_id}")
async def update_batch(
    batch_id: int,
    request: UpdateBatchRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only update your own batches")

    update_data = request.dict(exclude_unset=True, exclude_none=True)

    if "student_limit" in update_data and update_data["student_limit"] < batch.enrolled_count():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Student limit cannot be lower than the number of enrolled students"
        )

    for field, value in update_data.items():
        setattr(batch, field, value)

    if batch.end_date <= batch.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End date must be after start date")

    db.commit()
    db.refresh(batch)

    return {"success": True, "message": "Batch updated successfully", "data": {"batch": batch.to_dict()}}


@router.delete("/{batch_id}")
async def delete_batch(
    batch_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a batch; enrollments and payments are kept for records"""
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only delete your own batches")

    batch.is_active = False
    db.commit()

    logger.info(f"Batch {batch.id} deactivated by {current_user.email}")
    return {"success": True, "message": "Batch deleted successfully"}


# ============================================
# Enrollment Endpoints
# ============================================

@router.post("/{batch_id}/enroll")
async def enroll_in_batch(
    batch_id: int,
    request: Optional[EnrollRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Enroll a student (the caller, or `studentId` when an admin enrolls someone)
    Paid batches require a successful payment first.
    """
    batch = _get_batch_or_404(db, batch_id)

    if not batch.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch is not active")

    if current_user.is_admin() and request and request.student_id:
        student = db.query(User).filter(User.id == request.student_id, User.role == UserRole.STUDENT).first()
        if not student:
            raise not_found("Student")
    elif current_user.is_student():
        student = current_user
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can enroll in batches")

    if batch.enrollment_fee > 0 and not current_user.is_admin() and not has_paid(db, batch.id, student.id):
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Payment required for enrollment. Please complete the payment first."
        )

    if is_enrolled(db, batch.id, student.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Student is already enrolled in this batch")

    if batch.is_full():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch is full")

    enrollment, _ = enroll_student(db, batch, student.id)

    notification_service.create_notification(
        db,
        recipient_id=student.id,
        title="Enrolled in Batch",
        message=f"You have been enrolled in {batch.name}.",
        type=NotificationType.BATCH_JOINED,
        category=NotificationCategory.ACADEMIC,
        related_batch_id=batch.id,
        related_course_id=batch.course_id,
    )

    db.commit()
    db.refresh(batch)

    return {
        "success": True,
        "message": "Successfully enrolled in batch",
        "data": {"batch": batch.to_dict(), "enrollment": enrollment.to_dict()},
    }


@router.get("/{batch_id}/can-enroll")
async def can_enroll(
    batch_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)

    requires_payment = batch.enrollment_fee > 0
    payment_made = has_paid(db, batch.id, current_user.id) if requires_payment else False
    already_enrolled = is_enrolled(db, batch.id, current_user.id)

    return {
        "success": True,
        "data": {
            "batchId": batch.id,
            "requiresPayment": requires_payment,
            "paymentMade": payment_made,
            "canEnroll": (
                batch.is_active
                and not already_enrolled
                and not batch.is_full()
                and (not requires_payment or payment_made)
            ),
            "isEnrolled": already_enrolled,
            "isFull": batch.is_full(),
            "enrollmentFee": batch.enrollment_fee,
        },
    }


@router.delete("/{batch_id}/students/{student_id}")
async def remove_student(
    batch_id: int,
    student_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage students in your own batches")

    enrollment = get_enrollment(db, batch.id, student_id)
    if not enrollment or enrollment.status != EnrollmentStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student is not enrolled in this batch")

    enrollment.status = EnrollmentStatus.DROPPED
    db.commit()

    logger.info(f"Student {student_id} removed from batch {batch.id} by {current_user.email}")
    return {"success": True, "message": "Student removed from batch successfully"}


@router.get("/{batch_id}/available-students")
async def available_students(
    batch_id: int,
    search: Optional[str] = Query(None),
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """Active students who are not enrolled in the batch yet"""
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage students in your own batches")

    enrolled_ids = [e.student_id for e in batch.active_enrollments()]
    query = db.query(User).filter(User.role == UserRole.STUDENT, User.is_active == True)  # noqa: E712
    if enrolled_ids:
        query = query.filter(~User.id.in_(enrolled_ids))
    if search:
        term = f"%{search}%"
        query = query.filter(or_(User.name.like(term), User.email.like(term)))

    students = query.order_by(User.name).limit(50).all()
    return {"success": True, "data": {"students": [s.to_summary() for s in students]}}


# ============================================
# Schedule Endpoints
# ============================================

@router.get("/{batch_id}/schedule")
async def get_schedule(
    batch_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    _ensure_can_view_content(db, batch, current_user)

    schedule = sorted(batch.schedule or [], key=lambda s: s.get("startTime") or "")
    return {"success": True, "data": {"batchId": batch.id, "schedule": schedule}}


@router.post("/{batch_id}/schedule", status_code=status.HTTP_201_CREATED)
async def add_schedule_session(
    batch_id: int,
    request: ScheduleSessionRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage the schedule of your own batches")

    if request.end_time <= request.start_time:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")

    entry = {"id": uuid.uuid4().hex, **_entry_from_request(request, SCHEDULE_FIELDS), "createdAt": datetime.utcnow().isoformat()}
    batch.schedule = [dict(s) for s in (batch.schedule or [])] + [entry]
    flag_modified(batch, "schedule")
    db.commit()

    return {"success": True, "message": "Session added successfully", "data": {"session": entry}}


@router.put("/{batch_id}/schedule/{session_id}")
async def update_schedule_session(
    batch_id: int,
    session_id: str,
    request: UpdateScheduleSessionRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage the schedule of your own batches")

    schedule = [dict(s) for s in (batch.schedule or [])]
    index = _find_entry(schedule, session_id, "Session")
    schedule[index].update(_entry_from_request(request, SCHEDULE_FIELDS, exclude_unset=True))
    schedule[index]["updatedAt"] = datetime.utcnow().isoformat()

    batch.schedule = schedule
    flag_modified(batch, "schedule")
    db.commit()

    return {"success": True, "message": "Session updated successfully", "data": {"session": schedule[index]}}


@router.delete("/{batch_id}/schedule/{session_id}")
async def delete_schedule_session(
    batch_id: int,
    session_id: str,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage the schedule of your own batches")

    schedule = [dict(s) for s in (batch.schedule or [])]
    index = _find_entry(schedule, session_id, "Session")
    schedule.pop(index)

    batch.schedule = schedule
    flag_modified(batch, "schedule")
    db.commit()

    return {"success": True, "message": "Session deleted successfully"}


# ============================================
# Materials Endpoints
# ============================================

@router.get("/{batch_id}/materials")
async def get_materials(
    batch_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    _ensure_can_view_content(db, batch, current_user)
    return {"success": True, "data": {"batchId": batch.id, "materials": batch.materials or []}}


@router.post("/{batch_id}/materials", status_code=status.HTTP_201_CREATED)
async def add_material(
    batch_id: int,
    request: MaterialRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage materials of your own batches")

    material = {
        "id": uuid.uuid4().hex,
        **_entry_from_request(request, MATERIAL_FIELDS),
        "uploadedBy": current_user.id,
        "uploadedAt": datetime.utcnow().isoformat(),
    }
    batch.materials = [dict(m) for m in (batch.materials or [])] + [material]
    flag_modified(batch, "materials")
    db.commit()

    return {"success": True, "message": "Material added successfully", "data": {"material": material}}


@router.put("/{batch_id}/materials/{material_id}")
async def update_material(
    batch_id: int,
    material_id: str,
    request: UpdateMaterialRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage materials of your own batches")

    materials = [dict(m) for m in (batch.materials or [])]
    index = _find_entry(materials, material_id, "Material")
    materials[index].update(_entry_from_request(request, MATERIAL_FIELDS, exclude_unset=True))
    materials[index]["updatedAt"] = datetime.utcnow().isoformat()

    batch.materials = materials
    flag_modified(batch, "materials")
    db.commit()

    return {"success": True, "message": "Material updated successfully", "data": {"material": materials[index]}}


@router.delete("/{batch_id}/materials/{material_id}")
async def delete_material(
    batch_id: int,
    material_id: str,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only manage materials of your own batches")

    materials = [dict(m) for m in (batch.materials or [])]
    index = _find_entry(materials, material_id, "Material")
    materials.pop(index)

    batch.materials = materials
    flag_modified(batch, "materials")
    db.commit()

    return {"success": True, "message": "Material deleted successfully"}


# ============================================
# Settings Endpoint
# ============================================

@router.put("/{batch_id}/settings")
async def update_settings(
    batch_id: int,
    new_settings: Dict[str, Any],
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    """
    Update batch switches. Unknown keys are ignored.
    Accepts either the settings object itself or {"settings": {...}}.
    """
    batch = _get_batch_or_404(db, batch_id)
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only update settings of your own batches")

    incoming = new_settings.get("settings", new_settings)
    if not isinstance(incoming, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Settings must be an object")

    merged = dict(batch.settings or {})
    for key in BATCH_SETTING_KEYS:
        if key not in incoming:
            continue
        if key == "isActive":
            batch.is_active = bool(incoming[key])
        else:
            merged[key] = bool(incoming[key])

    batch.settings = merged
    flag_modified(batch, "settings")
    db.commit()
    db.refresh(batch)

    return {"success": True, "message": "Batch settings updated successfully", "data": {"settings": batch.settings_dict()}}
