"""
Live class sessions attached to batches
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from .base import Base


class LiveSessionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


class LiveSession(Base):
    """
    A scheduled live class with a meeting link.
    Status moves scheduled -> live -> ended, or scheduled -> cancelled.
    """
    __tablename__ = "live_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column("batchId", Integer, ForeignKey("batches.id"), nullable=False, index=True)
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Meeting
    meeting_id = Column("meetingId", String(100), unique=True, nullable=False)
    meeting_link = Column("meetingLink", Text, nullable=False)
    passcode = Column(String(50), nullable=True)

    # Timing
    start_time = Column("startTime", DateTime, nullable=False, index=True)
    end_time = Column("endTime", DateTime, nullable=True)
    duration = Column(Integer, default=60, nullable=False)  # minutes

    status = Column(SQLEnum(LiveSessionStatus), default=LiveSessionStatus.SCHEDULED, nullable=False, index=True)

    # Recording
    recording_url = Column("recordingUrl", Text, nullable=True)
    is_recorded = Column("isRecorded", Boolean, default=False, nullable=False)

    settings = Column(JSON, nullable=True)
    reminder_sent_at = Column("reminderSentAt", DateTime, nullable=True)

    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    batch = relationship("Batch")
    teacher = relationship("User")

    def __repr__(self):
        return f"<LiveSession(id={self.id}, title={self.title}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "batchId": self.batch_id,
            "batch": {"id": self.batch.id, "name": self.batch.name} if self.batch else None,
            "teacherId": self.teacher_id,
            "teacher": self.teacher.to_summary() if self.teacher else None,
            "title": self.title,
            "description": self.description,
            "meetingId": self.meeting_id,
            "meetingLink": self.meeting_link,
            "passcode": self.passcode,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "status": self.status.value,
            "recordingUrl": self.recording_url,
            "isRecorded": self.is_recorded,
            "settings": self.settings or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
