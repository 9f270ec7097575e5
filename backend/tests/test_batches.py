"""
Batch tests: creation, enrollment rules, timetable, materials and settings
"""
from datetime import datetime, timedelta

from models.batch import BatchEnrollment, EnrollmentStatus
from models.course import Course, CourseCategory
from models.notification import Notification, NotificationType
from models.user import UserRole
from conftest import create_test_user_in_db, get_auth_header, enroll_student, create_payment


class TestBatchCreation:
    """Test creating batches"""

    def test_create_batch_for_existing_course(self, client, teacher_headers, test_course):
        payload = {"name": "Weekend Batch", "courseId": test_course.id, "studentLimit": 25}

        response = client.post("/api/batches", json=payload, headers=teacher_headers)
        assert response.status_code == 201

        batch = response.json()["data"]["batch"]
        assert batch["courseId"] == test_course.id
        assert batch["studentLimit"] == 25
        assert batch["students"] == []

    def test_create_batch_auto_creates_course_from_subject(self, client, test_db, teacher_headers, test_teacher):
        payload = {"name": "Evening Group", "subject": "Maths", "grade": "10"}

        response = client.post("/api/batches", json=payload, headers=teacher_headers)
        assert response.status_code == 201

        course = test_db.query(Course).filter(Course.id == response.json()["data"]["batch"]["courseId"]).first()
        assert course.title == "Maths - Grade 10 - Evening Group"
        assert course.category == CourseCategory.MATHEMATICS
        assert course.teacher_id == test_teacher.id
        assert course.is_published is True

    def test_unknown_subject_maps_to_other(self, client, test_db, teacher_headers):
        response = client.post("/api/batches", json={"name": "Poetry Club", "subject": "Poetry"}, headers=teacher_headers)

        course = test_db.query(Course).filter(Course.id == response.json()["data"]["batch"]["courseId"]).first()
        assert course.category == CourseCategory.OTHER

    def test_subject_required_without_course(self, client, teacher_headers):
        response = client.post("/api/batches", json={"name": "No Subject"}, headers=teacher_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Subject is required when no courseId is provided"

    def test_teacher_cannot_create_for_another_teacher(self, client, test_db, teacher_headers):
        other = create_test_user_in_db(test_db, "other@example.com", "Other Teacher", UserRole.TEACHER)

        payload = {"name": "Borrowed Batch", "subject": "Physics", "teacherId": other.id}
        response = client.post("/api/batches", json=payload, headers=teacher_headers)
        assert response.status_code == 403

    def test_admin_assigns_teacher(self, client, admin_headers, test_teacher):
        payload = {"name": "Assigned Batch", "subject": "Physics", "teacherId": test_teacher.id}
        response = client.post("/api/batches", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["data"]["batch"]["teacherId"] == test_teacher.id

    def test_admin_cannot_assign_student_as_teacher(self, client, admin_headers, test_student):
        payload = {"name": "Wrong Batch", "subject": "Physics", "teacherId": test_student.id}
        response = client.post("/api/batches", json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid teacher role"

    def test_create_with_initial_students(self, client, teacher_headers, test_student):
        payload = {"name": "Invited Batch", "subject": "English", "studentIds": [test_student.id]}

        response = client.post("/api/batches", json=payload, headers=teacher_headers)
        assert response.status_code == 201

        batch = response.json()["data"]["batch"]
        assert batch["enrolledCount"] == 1
        assert batch["students"][0]["id"] == test_student.id

    def test_end_date_before_start(self, client, teacher_headers, test_course):
        start = datetime.utcnow() + timedelta(days=10)
        payload = {
            "name": "Backwards Batch",
            "courseId": test_course.id,
            "startDate": start.isoformat(),
            "endDate": (start - timedelta(days=1)).isoformat(),
        }
        response = client.post("/api/batches", json=payload, headers=teacher_headers)
        assert response.status_code == 400


class TestBatchEnrollment:
    """Test joining and leaving batches"""

    def test_enroll_free_batch(self, client, test_db, test_batch, test_student, student_headers):
        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 200
        assert response.json()["data"]["enrollment"]["status"] == "active"

        notification = test_db.query(Notification).filter(
            Notification.recipient_id == test_student.id,
            Notification.type == NotificationType.BATCH_JOINED,
        ).first()
        assert notification is not None

    def test_enroll_twice(self, client, test_db, test_batch, test_student, student_headers):
        enroll_student(test_db, test_batch, test_student)

        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Student is already enrolled in this batch"

    def test_paid_batch_requires_payment(self, client, paid_batch, student_headers):
        response = client.post(f"/api/batches/{paid_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 402

    def test_paid_batch_after_payment(self, client, test_db, paid_batch, test_student, student_headers):
        create_payment(test_db, paid_batch, test_student)

        response = client.post(f"/api/batches/{paid_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 200

    def test_full_batch(self, client, test_db, test_batch):
        for i in range(2):
            student = create_test_user_in_db(test_db, f"s{i}@example.com", f"Student {chr(65 + i)}")
            enroll_student(test_db, test_batch, student)

        latecomer = create_test_user_in_db(test_db, "late@example.com", "Late Student")
        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=get_auth_header(latecomer))
        assert response.status_code == 400
        assert response.json()["message"] == "Batch is full"

    def test_inactive_batch(self, client, test_db, test_batch, student_headers):
        test_batch.is_active = False
        test_db.commit()

        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 400

    def test_teacher_cannot_enroll(self, client, test_batch, teacher_headers):
        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=teacher_headers)
        assert response.status_code == 403

    def test_admin_enrolls_student_without_payment(self, client, paid_batch, test_student, admin_headers):
        response = client.post(
            f"/api/batches/{paid_batch.id}/enroll", json={"studentId": test_student.id}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["enrollment"]["studentId"] == test_student.id

    def test_can_enroll(self, client, paid_batch, student_headers):
        response = client.get(f"/api/batches/{paid_batch.id}/can-enroll", headers=student_headers)
        data = response.json()["data"]
        assert data["requiresPayment"] is True
        assert data["paymentMade"] is False
        assert data["canEnroll"] is False

    def test_remove_student_marks_dropped(self, client, test_db, test_batch, test_student, teacher_headers):
        enrollment = enroll_student(test_db, test_batch, test_student)

        response = client.delete(f"/api/batches/{test_batch.id}/students/{test_student.id}", headers=teacher_headers)
        assert response.status_code == 200

        test_db.refresh(enrollment)
        assert enrollment.status == EnrollmentStatus.DROPPED

    def test_rejoin_after_drop_reuses_row(self, client, test_db, test_batch, test_student, student_headers):
        enrollment = enroll_student(test_db, test_batch, test_student)
        enrollment.status = EnrollmentStatus.DROPPED
        test_db.commit()

        response = client.post(f"/api/batches/{test_batch.id}/enroll", headers=student_headers)
        assert response.status_code == 200
        assert test_db.query(BatchEnrollment).filter(BatchEnrollment.student_id == test_student.id).count() == 1

    def test_available_students_excludes_enrolled(self, client, test_db, test_batch, test_student, teacher_headers):
        other = create_test_user_in_db(test_db, "free@example.com", "Free Student")
        enroll_student(test_db, test_batch, test_student)

        response = client.get(f"/api/batches/{test_batch.id}/available-students", headers=teacher_headers)
        ids = [s["id"] for s in response.json()["data"]["students"]]
        assert ids == [other.id]

    def test_my_batches(self, client, test_db, test_batch, test_student, student_headers):
        enroll_student(test_db, test_batch, test_student)

        response = client.get("/api/batches/my-batches", headers=student_headers)
        batches = response.json()["data"]["batches"]
        assert batches[0]["id"] == test_batch.id
        assert batches[0]["enrollment"]["status"] == "active"


class TestBatchContent:
    """Test timetable, materials and settings"""

    def test_schedule_crud(self, client, test_batch, teacher_headers):
        start = datetime.utcnow() + timedelta(days=1)
        response = client.post(
            f"/api/batches/{test_batch.id}/schedule",
            json={"topic": "Quadratic equations", "startTime": start.isoformat()},
            headers=teacher_headers,
        )
        assert response.status_code == 201
        entry = response.json()["data"]["session"]
        assert entry["endTime"] == (start + timedelta(hours=1)).isoformat()

        response = client.put(
            f"/api/batches/{test_batch.id}/schedule/{entry['id']}",
            json={"topic": "Quadratics revisited"},
            headers=teacher_headers,
        )
        assert response.json()["data"]["session"]["topic"] == "Quadratics revisited"

        response = client.get(f"/api/batches/{test_batch.id}/schedule", headers=teacher_headers)
        assert len(response.json()["data"]["schedule"]) == 1

        response = client.delete(f"/api/batches/{test_batch.id}/schedule/{entry['id']}", headers=teacher_headers)
        assert response.status_code == 200

        response = client.get(f"/api/batches/{test_batch.id}/schedule", headers=teacher_headers)
        assert response.json()["data"]["schedule"] == []

    def test_upcoming_sessions_for_student(self, client, test_db, test_batch, test_student,
                                           student_headers, teacher_headers):
        enroll_student(test_db, test_batch, test_student)
        now = datetime.utcnow()
        for topic, offset in (("Later", 3), ("Past", -1), ("Sooner", 1)):
            client.post(
                f"/api/batches/{test_batch.id}/schedule",
                json={"topic": topic, "startTime": (now + timedelta(days=offset)).isoformat()},
                headers=teacher_headers,
            )

        response = client.get("/api/batches/upcoming-sessions", headers=student_headers)
        topics = [s["topic"] for s in response.json()["data"]["sessions"]]
        assert topics == ["Sooner", "Later"]

    def test_outsider_cannot_see_materials(self, client, test_batch, student_headers):
        response = client.get(f"/api/batches/{test_batch.id}/materials", headers=student_headers)
        assert response.status_code == 403

    def test_material_crud(self, client, test_db, test_batch, test_student, teacher_headers, student_headers):
        response = client.post(
            f"/api/batches/{test_batch.id}/materials",
            json={"title": "Worksheet 1", "url": "https://files.example.com/ws1.pdf", "fileSize": 2048},
            headers=teacher_headers,
        )
        assert response.status_code == 201
        material = response.json()["data"]["material"]
        assert material["type"] == "document"
        assert material["fileSize"] == 2048

        response = client.put(
            f"/api/batches/{test_batch.id}/materials/{material['id']}",
            json={"type": "assignment"},
            headers=teacher_headers,
        )
        assert response.json()["data"]["material"]["type"] == "assignment"

        enroll_student(test_db, test_batch, test_student)
        response = client.get(f"/api/batches/{test_batch.id}/materials", headers=student_headers)
        assert [m["title"] for m in response.json()["data"]["materials"]] == ["Worksheet 1"]

        response = client.delete(f"/api/batches/{test_batch.id}/materials/unknown", headers=teacher_headers)
        assert response.status_code == 404

    def test_update_settings(self, client, test_batch, teacher_headers):
        response = client.put(
            f"/api/batches/{test_batch.id}/settings",
            json={"settings": {"chatEnabled": False, "isActive": False, "unknownKey": True}},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        data = response.json()["data"]["settings"]
        assert data["chatEnabled"] is False
        assert data["isActive"] is False
        assert data["recordingEnabled"] is True
        assert "unknownKey" not in data

    def test_student_limit_not_below_enrollment(self, client, test_db, test_batch, test_student, teacher_headers):
        enroll_student(test_db, test_batch, test_student)
        other = create_test_user_in_db(test_db, "second@example.com", "Second Student")
        enroll_student(test_db, test_batch, other)

        response = client.put(f"/api/batches/{test_batch.id}", json={"studentLimit": 1}, headers=teacher_headers)
        assert response.status_code == 400

    def test_delete_is_soft(self, client, test_db, test_batch, teacher_headers):
        response = client.delete(f"/api/batches/{test_batch.id}", headers=teacher_headers)
        assert response.status_code == 200

        test_db.refresh(test_batch)
        assert test_batch.is_active is False


class TestBatchDetails:
    """Test GET/PUT /api/batches/{id}"""

    def test_explicit_nulls_leave_fields_unchanged(self, client, test_db, test_batch, teacher_headers):
        start_date = test_batch.start_date

        response = client.put(
            f"/api/batches/{test_batch.id}",
            json={"startDate": None, "name": None, "description": "Revision sessions"},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        batch = response.json()["data"]["batch"]
        assert batch["name"] == "Algebra Morning Batch"
        assert batch["description"] == "Revision sessions"
        assert batch["startDate"] == start_date.isoformat()

    def test_classmates_see_roster_without_emails(self, client, test_db, test_batch, test_student, student_headers):
        classmate = create_test_user_in_db(test_db, "classmate@example.com", "Classmate Student")
        enroll_student(test_db, test_batch, test_student)
        enroll_student(test_db, test_batch, classmate)

        response = client.get(f"/api/batches/{test_batch.id}", headers=student_headers)
        batch = response.json()["data"]["batch"]
        assert batch["isEnrolled"] is True
        assert batch["enrolledCount"] == 2
        assert {s["name"] for s in batch["students"]} == {test_student.name, "Classmate Student"}
        assert all("email" not in s for s in batch["students"])

    def test_owner_sees_student_emails(self, client, test_db, test_batch, test_student, teacher_headers):
        enroll_student(test_db, test_batch, test_student)

        response = client.get(f"/api/batches/{test_batch.id}", headers=teacher_headers)
        assert response.json()["data"]["batch"]["students"][0]["email"] == test_student.email
