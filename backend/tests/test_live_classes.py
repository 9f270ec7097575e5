"""
Live class tests: scheduling, join window, running and deleting sessions
"""
from datetime import datetime, timedelta

from models.user import UserRole
from models.live_session import LiveSession, LiveSessionStatus
from models.notification import Notification, NotificationType
from conftest import create_test_user_in_db, get_auth_header, enroll_student


def _make_session(db, batch, start_in_minutes=60, status=LiveSessionStatus.SCHEDULED, **fields):
    start = datetime.utcnow() + timedelta(minutes=start_in_minutes)
    session = LiveSession(
        batch_id=batch.id,
        teacher_id=batch.teacher_id,
        title=fields.pop("title", "Quadratic Equations"),
        meeting_id=fields.pop("meeting_id", f"lms_{batch.id}_{start_in_minutes}"),
        meeting_link="https://meet.google.com/abc-defg-hij",
        start_time=start,
        end_time=start + timedelta(minutes=60),
        duration=60,
        status=status,
        **fields
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


class TestScheduling:
    """Creating and updating sessions"""

    def test_create_notifies_enrolled_students(self, client, test_db, test_batch, test_student, teacher_headers):
        enroll_student(test_db, test_batch, test_student)

        payload = {
            "batchId": test_batch.id,
            "title": "Linear Equations Live",
            "startTime": (datetime.utcnow() + timedelta(days=1)).isoformat(),
            "duration": 90,
        }
        response = client.post("/api/live-classes", json=payload, headers=teacher_headers)
        assert response.status_code == 201

        session = response.json()["data"]["session"]
        assert session["status"] == "scheduled"
        assert session["meetingId"].startswith("lms_")
        assert session["meetingLink"] == f"https://meet.google.com/generated-{session['meetingId']}"

        start = datetime.fromisoformat(session["startTime"])
        end = datetime.fromisoformat(session["endTime"])
        assert end - start == timedelta(minutes=90)

        notification = test_db.query(Notification).filter(Notification.recipient_id == test_student.id).one()
        assert notification.type == NotificationType.LIVE_CLASS
        assert notification.related_batch_id == test_batch.id

    def test_meeting_link_gives_gmeet_id(self, client, test_batch, teacher_headers):
        payload = {
            "batchId": test_batch.id,
            "title": "Revision Session",
            "startTime": (datetime.utcnow() + timedelta(days=1)).isoformat(),
            "meetingLink": "https://meet.google.com/xyz-abcd-efg",
        }
        response = client.post("/api/live-classes", json=payload, headers=teacher_headers)
        assert response.json()["data"]["session"]["meetingId"].startswith("gmeet_")

    def test_other_teacher_cannot_schedule(self, client, test_db, test_batch):
        other = create_test_user_in_db(test_db, "other@example.com", "Other Teacher", UserRole.TEACHER)
        payload = {
            "batchId": test_batch.id,
            "title": "Hijacked Session",
            "startTime": (datetime.utcnow() + timedelta(days=1)).isoformat(),
        }
        response = client.post("/api/live-classes", json=payload, headers=get_auth_header(other))
        assert response.status_code == 403

    def test_student_cannot_schedule(self, client, test_batch, student_headers):
        payload = {
            "batchId": test_batch.id,
            "title": "Study Group",
            "startTime": (datetime.utcnow() + timedelta(days=1)).isoformat(),
        }
        response = client.post("/api/live-classes", json=payload, headers=student_headers)
        assert response.status_code == 403

    def test_reschedule_resets_reminder(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, reminder_sent_at=datetime.utcnow())
        new_start = datetime.utcnow() + timedelta(days=2)

        response = client.put(
            f"/api/live-classes/{session.id}",
            json={"startTime": new_start.isoformat(), "duration": 45},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        test_db.refresh(session)
        assert session.reminder_sent_at is None
        assert session.end_time - session.start_time == timedelta(minutes=45)

    def test_null_fields_in_update_are_ignored(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch)
        start_time, duration = session.start_time, session.duration

        response = client.put(
            f"/api/live-classes/{session.id}",
            json={"startTime": None, "duration": None, "title": "Trigonometry Doubt Clearing"},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        test_db.refresh(session)
        assert session.title == "Trigonometry Doubt Clearing"
        assert session.start_time == start_time
        assert session.duration == duration

    def test_cannot_update_ended_session(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, status=LiveSessionStatus.ENDED)

        response = client.put(f"/api/live-classes/{session.id}", json={"title": "Renamed"}, headers=teacher_headers)
        assert response.status_code == 400

    def test_student_only_sees_own_batches(self, client, test_db, test_batch, paid_batch, test_student,
                                           student_headers):
        enroll_student(test_db, test_batch, test_student)
        mine = _make_session(test_db, test_batch)
        _make_session(test_db, paid_batch, start_in_minutes=120)

        response = client.get("/api/live-classes", headers=student_headers)
        sessions = response.json()["data"]["sessions"]
        assert [s["id"] for s in sessions] == [mine.id]

    def test_batch_sessions_in_start_order(self, client, test_db, test_batch, teacher_headers):
        later = _make_session(test_db, test_batch, start_in_minutes=300)
        sooner = _make_session(test_db, test_batch, start_in_minutes=30)

        response = client.get(f"/api/live-classes/batch/{test_batch.id}", headers=teacher_headers)
        assert [s["id"] for s in response.json()["data"]["sessions"]] == [sooner.id, later.id]


class TestJoining:
    """Join window and access rules"""

    def test_join_too_early(self, client, test_db, test_batch, test_student, student_headers):
        enroll_student(test_db, test_batch, test_student)
        session = _make_session(test_db, test_batch, start_in_minutes=30)

        response = client.post(f"/api/live-classes/{session.id}/join", headers=student_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Session has not started yet"

    def test_join_within_window(self, client, test_db, test_batch, test_student, student_headers):
        enroll_student(test_db, test_batch, test_student)
        session = _make_session(test_db, test_batch, start_in_minutes=5, passcode="1234")

        response = client.post(f"/api/live-classes/{session.id}/join", headers=student_headers)
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["joinUrl"] == session.meeting_link
        assert data["passcode"] == "1234"

        test_db.refresh(session)
        assert session.status == LiveSessionStatus.SCHEDULED

    def test_join_after_start_goes_live(self, client, test_db, test_batch, test_student, student_headers):
        enroll_student(test_db, test_batch, test_student)
        session = _make_session(test_db, test_batch, start_in_minutes=-5)

        client.post(f"/api/live-classes/{session.id}/join", headers=student_headers)

        test_db.refresh(session)
        assert session.status == LiveSessionStatus.LIVE

    def test_join_requires_enrollment(self, client, test_db, test_batch, student_headers):
        session = _make_session(test_db, test_batch, start_in_minutes=-5)

        response = client.post(f"/api/live-classes/{session.id}/join", headers=student_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "You are not enrolled in this batch"

    def test_join_ended_session(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, start_in_minutes=-90, status=LiveSessionStatus.ENDED)

        response = client.post(f"/api/live-classes/{session.id}/join", headers=teacher_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Session has ended"


class TestRunningSessions:
    """Start, end and delete"""

    def test_start_then_end_with_recording(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, start_in_minutes=2)

        response = client.post(f"/api/live-classes/{session.id}/start", headers=teacher_headers)
        assert response.json()["data"]["session"]["status"] == "live"

        response = client.post(
            f"/api/live-classes/{session.id}/end",
            json={"recordingUrl": "https://recordings.example.com/session.mp4"},
            headers=teacher_headers,
        )
        data = response.json()["data"]["session"]
        assert data["status"] == "ended"
        assert data["isRecorded"] is True
        assert data["recordingUrl"] == "https://recordings.example.com/session.mp4"

    def test_end_without_body(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, status=LiveSessionStatus.LIVE)

        response = client.post(f"/api/live-classes/{session.id}/end", headers=teacher_headers)
        assert response.status_code == 200
        assert response.json()["data"]["session"]["isRecorded"] is False

    def test_cannot_start_twice(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, status=LiveSessionStatus.LIVE)

        response = client.post(f"/api/live-classes/{session.id}/start", headers=teacher_headers)
        assert response.status_code == 400

    def test_cannot_delete_live_session(self, client, test_db, test_batch, teacher_headers):
        session = _make_session(test_db, test_batch, status=LiveSessionStatus.LIVE)

        response = client.delete(f"/api/live-classes/{session.id}", headers=teacher_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot delete a live session. Please end it first."

    def test_delete_scheduled_session(self, client, test_db, test_batch, admin_headers):
        session = _make_session(test_db, test_batch)
        session_id = session.id

        response = client.delete(f"/api/live-classes/{session_id}", headers=admin_headers)
        assert response.status_code == 200

        test_db.expire_all()
        assert test_db.query(LiveSession).filter(LiveSession.id == session_id).first() is None

    def test_missing_session(self, client, teacher_headers):
        response = client.get("/api/live-classes/9999", headers=teacher_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Live session not found"
