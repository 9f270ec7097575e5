"""
Live class API endpoints
Scheduling, joining and running live sessions for batches
"""
import logging
import random
import string
import time
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc, asc
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

from core.config import settings
from core.database import get_db
from core.security import get_current_user, require_roles
from models.user import User, UserRole
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.live_session import LiveSession, LiveSessionStatus
from models.notification import NotificationType, NotificationCategory, NotificationPriority
from services import notification_service
from services.enrollment_service import is_enrolled
from api.common import paginate, ensure_owner_or_admin, not_found

logger = logging.getLogger(__name__)

router = APIRouter()

teacher_or_admin = require_roles(UserRole.TEACHER, UserRole.ADMIN)


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class CreateSessionRequest(BaseModel):
    """Schedule a live class for a batch"""
    batch_id: int = Field(..., alias="batchId")
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    start_time: datetime = Field(..., alias="startTime")
    duration: int = Field(60, ge=15, le=480)
    meeting_link: Optional[str] = Field(None, alias="meetingLink")
    passcode: Optional[str] = Field(None, max_length=50)
    settings: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True


class UpdateSessionRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = Field(None, alias="startTime")
    duration: Optional[int] = Field(None, ge=15, le=480)
    meeting_link: Optional[str] = Field(None, alias="meetingLink")
    passcode: Optional[str] = Field(None, max_length=50)
    status: Optional[LiveSessionStatus] = None
    settings: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True


class EndSessionRequest(BaseModel):
    recording_url: Optional[str] = Field(None, alias="recordingUrl")

    class Config:
        populate_by_name = True


# ============================================
# Utility Functions
# ============================================

def generate_meeting_id(has_link: bool) -> str:
    millis = int(time.time() * 1000)
    if has_link:
        return f"gmeet_{millis}"
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"lms_{millis}_{suffix}"


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return (value - value.utcoffset()).replace(tzinfo=None)
    return value


def _get_session_or_404(db: Session, session_id: int) -> LiveSession:
    session = db.query(LiveSession).filter(LiveSession.id == session_id).first()
    if not session:
        raise not_found("Live session")
    return session


def _student_batch_ids(db: Session, student_id: int):
    rows = db.query(BatchEnrollment.batch_id).filter(
        BatchEnrollment.student_id == student_id,
        BatchEnrollment.status == EnrollmentStatus.ACTIVE,
    ).all()
    return [row[0] for row in rows]


# ============================================
# Live Session Endpoints
# ============================================

@router.get("")
async def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session_status: Optional[LiveSessionStatus] = Query(None, alias="status"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    batch_id: Optional[int] = Query(None, alias="batchId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List live sessions, latest first
    Students only see sessions of batches they are enrolled in.
    """
    query = db.query(LiveSession)

    if current_user.is_student():
        query = query.filter(LiveSession.batch_id.in_(_student_batch_ids(db, current_user.id)))
    if session_status:
        query = query.filter(LiveSession.status == session_status)
    if teacher_id:
        query = query.filter(LiveSession.teacher_id == teacher_id)
    if batch_id:
        query = query.filter(LiveSession.batch_id == batch_id)

    sessions, pagination = paginate(query.order_by(desc(LiveSession.start_time)), page, limit)

    return {
        "success": True,
        "data": {"sessions": [s.to_dict() for s in sessions], "pagination": pagination},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    batch = db.query(Batch).filter(Batch.id == request.batch_id).first()
    if not batch:
        raise not_found("Batch")
    ensure_owner_or_admin(current_user, batch.teacher_id, "You can only create sessions for your own batches")

    start_time = _naive_utc(request.start_time)
    meeting_id = generate_meeting_id(bool(request.meeting_link))

    session = LiveSession(
        batch_id=batch.id,
        teacher_id=batch.teacher_id,
        title=request.title,
        description=request.description,
        meeting_id=meeting_id,
        meeting_link=request.meeting_link or f"https://meet.google.com/generated-{meeting_id}",
        passcode=request.passcode,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=request.duration),
        duration=request.duration,
        status=LiveSessionStatus.SCHEDULED,
        settings=request.settings,
    )
    db.add(session)
    db.flush()

    notification_service.create_bulk(
        db,
        notification_service.batch_student_ids(db, batch.id),
        title=f"New Live Class: {session.title}",
        message=f"A live class for {batch.name} is scheduled at {start_time.strftime('%Y-%m-%d %I:%M %p')} UTC.",
        type=NotificationType.LIVE_CLASS,
        category=NotificationCategory.ACADEMIC,
        priority=NotificationPriority.HIGH,
        sender_id=current_user.id,
        related_batch_id=batch.id,
        related_course_id=batch.course_id,
        metadata={"sessionId": session.id},
    )

    db.commit()
    db.refresh(session)

    logger.info(f"Live session {session.id} scheduled for batch {batch.id} by {current_user.email}")

    return {"success": True, "message": "Live session created successfully", "data": {"session": session.to_dict()}}


@router.get("/batch/{batch_id}")
async def batch_sessions(
    batch_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    batch = db.query(Batch).filter(Batch.id == batch_id).first()
    if not batch:
        raise not_found("Batch")

    sessions = db.query(LiveSession).filter(
        LiveSession.batch_id == batch_id
    ).order_by(asc(LiveSession.start_time)).all()

    return {"success": True, "data": {"sessions": [s.to_dict() for s in sessions]}}


@router.get("/{session_id}")
async def get_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = _get_session_or_404(db, session_id)
    return {"success": True, "data": {"session": session.to_dict()}}


@router.post("/{session_id}/join")
async def join_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the meeting details for a session
    Joining opens LIVE_SESSION_JOIN_WINDOW_MINUTES before the start time.
    """
    session = _get_session_or_404(db, session_id)

    if session.status in (LiveSessionStatus.ENDED, LiveSessionStatus.CANCELLED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Session has {session.status.value}"
        )

    now = datetime.utcnow()
    if session.start_time - timedelta(minutes=settings.LIVE_SESSION_JOIN_WINDOW_MINUTES) > now:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session has not started yet")

    if current_user.is_student() and not is_enrolled(db, session.batch_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not enrolled in this batch"
        )
    if current_user.is_teacher() and current_user.id != session.teacher_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if session.status == LiveSessionStatus.SCHEDULED and session.start_time <= now:
        session.status = LiveSessionStatus.LIVE
        db.commit()

    return {
        "success": True,
        "data": {
            "sessionId": session.id,
            "meetingId": session.meeting_id,
            "joinUrl": session.meeting_link,
            "title": session.title,
            "passcode": session.passcode,
        },
    }


@router.post("/{session_id}/start")
async def start_session(
    session_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    session = _get_session_or_404(db, session_id)
    ensure_owner_or_admin(current_user, session.teacher_id, "You can only start your own sessions")

    if session.status != LiveSessionStatus.SCHEDULED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot start a session with status {session.status.value}"
        )

    session.status = LiveSessionStatus.LIVE
    db.commit()
    db.refresh(session)

    return {"success": True, "message": "Live session started", "data": {"session": session.to_dict()}}


@router.post("/{session_id}/end")
async def end_session(
    session_id: int,
    request: Optional[EndSessionRequest] = None,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    session = _get_session_or_404(db, session_id)
    ensure_owner_or_admin(current_user, session.teacher_id, "You can only end your own sessions")

    if session.status in (LiveSessionStatus.ENDED, LiveSessionStatus.CANCELLED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Session has already {session.status.value}"
        )

    session.status = LiveSessionStatus.ENDED
    session.end_time = datetime.utcnow()
    if request and request.recording_url:
        session.recording_url = request.recording_url
        session.is_recorded = True

    db.commit()
    db.refresh(session)

    logger.info(f"Live session {session.id} ended by {current_user.email}")
    return {"success": True, "message": "Live session ended", "data": {"session": session.to_dict()}}


@router.put("/{session_id}")
async def update_session(
    session_id: int,
    request: UpdateSessionRequest,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    session = _get_session_or_404(db, session_id)
    ensure_owner_or_admin(current_user, session.teacher_id, "You can only update your own sessions")

    if session.status == LiveSessionStatus.ENDED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update an ended session")

    update_data = request.dict(exclude_unset=True, exclude_none=True)
    if update_data.get("start_time"):
        update_data["start_time"] = _naive_utc(update_data["start_time"])
    for field, value in update_data.items():
        setattr(session, field, value)

    if "start_time" in update_data or "duration" in update_data:
        session.end_time = session.start_time + timedelta(minutes=session.duration)
        session.reminder_sent_at = None

    db.commit()
    db.refresh(session)

    return {"success": True, "message": "Live session updated successfully", "data": {"session": session.to_dict()}}


@router.delete("/{session_id}")
async def delete_session(
    session_id: int,
    current_user: User = Depends(teacher_or_admin),
    db: Session = Depends(get_db)
):
    session = _get_session_or_404(db, session_id)
    ensure_owner_or_admin(current_user, session.teacher_id, "You can only delete your own sessions")

    if session.status == LiveSessionStatus.LIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a live session. Please end it first."
        )

    db.delete(session)
    db.commit()

    logger.info(f"Live session {session_id} deleted by {current_user.email}")
    return {"success": True, "message": "Live session deleted successfully"}
