"""
Authentication flow tests: registration, login lockout, profile and tokens
"""
from models.user import User, ApprovalStatus
from models.notification import Notification, NotificationType
from conftest import TEST_PASSWORD


class TestAPIHealthEndpoints:
    """Test API health and basic endpoints"""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "Welcome" in data["message"]

    def test_health_check_endpoint(self, client):
        """Health check reports uptime and a reachable database"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["database"] == "connected"
        assert data["uptime"] >= 0

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "API endpoint not found",
            "path": "/api/does-not-exist",
        }


class TestRegistration:
    """Test account creation"""

    def test_register_student(self, client, test_db):
        payload = {"name": "Asha Verma", "email": "Asha@Example.com", "password": "Secret123"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["token"]
        assert data["refreshToken"]
        assert data["user"]["email"] == "asha@example.com"
        assert data["user"]["role"] == "student"
        assert "password" not in data["user"]

        welcome = test_db.query(Notification).filter(
            Notification.recipient_id == data["user"]["id"]
        ).first()
        assert welcome.type == NotificationType.WELCOME

    def test_register_teacher_starts_pending(self, client, test_db):
        payload = {"name": "Ravi Kumar", "email": "ravi@example.com", "password": "Secret123", "role": "teacher"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201

        user = test_db.query(User).filter(User.email == "ravi@example.com").first()
        assert user.approval_status == ApprovalStatus.PENDING

    def test_register_admin_role_rejected(self, client):
        payload = {"name": "Sneaky User", "email": "sneaky@example.com", "password": "Secret123", "role": "admin"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_register_weak_password(self, client):
        payload = {"name": "Weak Pass", "email": "weak@example.com", "password": "password"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["errors"]]
        assert "password" in fields

    def test_register_duplicate_email(self, client, test_student):
        payload = {"name": "Another Student", "email": test_student.email, "password": "Secret123"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists with this email"


class TestLogin:
    """Test login and account lockout"""

    def test_login_success(self, client, test_student):
        response = client.post("/api/auth/login", json={"email": test_student.email, "password": TEST_PASSWORD})
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["id"] == test_student.id

    def test_login_wrong_password(self, client, test_student):
        response = client.post("/api/auth/login", json={"email": test_student.email, "password": "Wrong1234"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_repeated_failures_lock_account(self, client, test_db, test_student):
        """Five bad passwords lock the account, even for the right password"""
        for _ in range(5):
            client.post("/api/auth/login", json={"email": test_student.email, "password": "Wrong1234"})

        test_db.refresh(test_student)
        assert test_student.locked_until is not None

        response = client.post("/api/auth/login", json={"email": test_student.email, "password": TEST_PASSWORD})
        assert response.status_code == 401
        assert "locked" in response.json()["message"]

    def test_login_resets_attempts(self, client, test_db, test_student):
        client.post("/api/auth/login", json={"email": test_student.email, "password": "Wrong1234"})
        client.post("/api/auth/login", json={"email": test_student.email, "password": TEST_PASSWORD})

        test_db.refresh(test_student)
        assert test_student.login_attempts == 0
        assert test_student.last_login is not None


class TestProfileAndTokens:
    """Test the authenticated account endpoints"""

    def test_get_current_user_profile(self, client, student_headers, test_student):
        response = client.get("/api/auth/me", headers=student_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == test_student.email

    def test_authentication_required(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."

    def test_invalid_token(self, client):
        headers = {"Authorization": "Bearer invalid_token_here"}
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401

    def test_x_auth_token_header(self, client, student_headers):
        token = student_headers["Authorization"].split()[1]
        response = client.get("/api/auth/me", headers={"x-auth-token": token})
        assert response.status_code == 200

    def test_update_profile(self, client, student_headers):
        response = client.put("/api/auth/profile", json={"name": "Renamed Student"}, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Renamed Student"

    def test_change_password(self, client, student_headers, test_student):
        payload = {"currentPassword": TEST_PASSWORD, "newPassword": "NewSecret456"}
        response = client.put("/api/auth/change-password", json=payload, headers=student_headers)
        assert response.status_code == 200

        response = client.post("/api/auth/login", json={"email": test_student.email, "password": "NewSecret456"})
        assert response.status_code == 200

    def test_change_password_wrong_current(self, client, student_headers):
        payload = {"currentPassword": "Nope12345", "newPassword": "NewSecret456"}
        response = client.put("/api/auth/change-password", json=payload, headers=student_headers)
        assert response.status_code == 400

    def test_refresh_token(self, client, test_student):
        login = client.post("/api/auth/login", json={"email": test_student.email, "password": TEST_PASSWORD})
        refresh_token = login.json()["data"]["refreshToken"]

        response = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})
        assert response.status_code == 200
        assert response.json()["data"]["token"]

    def test_access_token_is_not_a_refresh_token(self, client, test_student):
        login = client.post("/api/auth/login", json={"email": test_student.email, "password": TEST_PASSWORD})
        access_token = login.json()["data"]["token"]

        response = client.post("/api/auth/refresh-token", json={"refreshToken": access_token})
        assert response.status_code == 401
