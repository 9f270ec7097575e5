"""
Course catalog and course management tests
"""
from models.course import Course
from conftest import create_test_user_in_db, get_auth_header, enroll_student
from models.user import UserRole


class TestCourseCatalog:
    """Public catalog endpoints"""

    def test_list_courses_public(self, client, test_course):
        response = client.get("/api/courses")
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["pagination"]["total"] == 1
        assert data["courses"][0]["title"] == test_course.title
        assert data["courses"][0]["teacher"]["id"] == test_course.teacher_id

    def test_filter_by_category_and_price(self, client, test_course):
        response = client.get("/api/courses", params={"category": "Mathematics", "maxPrice": 2500})
        assert len(response.json()["data"]["courses"]) == 1

        response = client.get("/api/courses", params={"category": "Physics"})
        assert response.json()["data"]["courses"] == []

        response = client.get("/api/courses", params={"minPrice": 5000})
        assert response.json()["data"]["courses"] == []

    def test_search_requires_term(self, client):
        response = client.get("/api/courses/search", params={"q": "  "})
        assert response.status_code == 400
        assert response.json()["message"] == "Search term is required"

    def test_search_matches_description(self, client, test_course):
        response = client.get("/api/courses/search", params={"q": "inequalities"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["searchTerm"] == "inequalities"
        assert [c["id"] for c in data["courses"]] == [test_course.id]

    def test_featured_only_published(self, client, test_db, test_course):
        test_course.is_published = False
        test_db.commit()

        response = client.get("/api/courses/featured")
        assert response.json()["data"]["courses"] == []

    def test_get_course_with_enrollment_flag(self, client, test_batch, test_student, student_headers):
        response = client.get(f"/api/courses/{test_batch.course_id}", headers=student_headers)
        assert response.status_code == 200

        course = response.json()["data"]["course"]
        assert course["isEnrolled"] is False
        assert [b["id"] for b in course["batches"]] == [test_batch.id]

    def test_get_missing_course(self, client):
        response = client.get("/api/courses/9999")
        assert response.status_code == 404
        assert response.json()["message"] == "Course not found"


class TestCourseManagement:
    """Teacher/admin course endpoints"""

    def test_create_course(self, client, teacher_headers, test_teacher):
        payload = {
            "title": "Organic Chemistry",
            "description": "Reaction mechanisms from first principles",
            "category": "Chemistry",
            "price": 1200,
        }
        response = client.post("/api/courses", json=payload, headers=teacher_headers)
        assert response.status_code == 201

        course = response.json()["data"]["course"]
        assert course["slug"] == "organic-chemistry"
        assert course["teacherId"] == test_teacher.id
        assert course["isPublished"] is False

    def test_duplicate_titles_get_unique_slugs(self, client, teacher_headers, test_course):
        payload = {
            "title": test_course.title,
            "description": "A second run of the same syllabus",
            "category": "Mathematics",
        }
        response = client.post("/api/courses", json=payload, headers=teacher_headers)
        assert response.json()["data"]["course"]["slug"] == "algebra-foundations-2"

    def test_student_cannot_create_course(self, client, student_headers):
        payload = {"title": "Sneaky", "description": "Not allowed to do this", "category": "Art"}
        response = client.post("/api/courses", json=payload, headers=student_headers)
        assert response.status_code == 403

    def test_other_teacher_cannot_update(self, client, test_db, test_course):
        other = create_test_user_in_db(test_db, "other@example.com", "Other Teacher", UserRole.TEACHER)

        response = client.put(
            f"/api/courses/{test_course.id}", json={"price": 1}, headers=get_auth_header(other)
        )
        assert response.status_code == 403

    def test_admin_can_update(self, client, admin_headers, test_course):
        response = client.put(f"/api/courses/{test_course.id}", json={"price": 999}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["course"]["price"] == 999

    def test_null_fields_in_update_are_ignored(self, client, teacher_headers, test_course):
        title, price = test_course.title, test_course.price
        response = client.put(
            f"/api/courses/{test_course.id}", json={"title": None, "price": None, "description": "Updated course description"},
            headers=teacher_headers,
        )
        assert response.status_code == 200
        course = response.json()["data"]["course"]
        assert course["title"] == title
        assert course["price"] == price
        assert course["description"] == "Updated course description"

    def test_toggle_publish(self, client, teacher_headers, test_course):
        response = client.put(f"/api/courses/{test_course.id}/publish", headers=teacher_headers)
        assert response.status_code == 200
        assert response.json()["data"]["course"]["isPublished"] is False
        assert response.json()["message"] == "Course unpublished successfully"

    def test_delete_is_soft(self, client, test_db, teacher_headers, test_course):
        response = client.delete(f"/api/courses/{test_course.id}", headers=teacher_headers)
        assert response.status_code == 200

        assert test_db.query(Course).filter(Course.id == test_course.id).first() is not None
        assert client.get(f"/api/courses/{test_course.id}").status_code == 404

    def test_my_courses_counts_batches(self, client, teacher_headers, test_batch):
        response = client.get("/api/courses/teacher/my-courses", headers=teacher_headers)
        courses = response.json()["data"]["courses"]
        assert courses[0]["batchCount"] == 1

    def test_course_analytics(self, client, teacher_headers, test_db, test_batch, test_student):
        enroll_student(test_db, test_batch, test_student)

        response = client.get(f"/api/courses/{test_batch.course_id}/analytics", headers=teacher_headers)
        data = response.json()["data"]
        assert data["totalBatches"] == 1
        assert data["totalStudents"] == 1
        assert data["revenue"] == 0
