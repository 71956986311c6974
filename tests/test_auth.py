from jose import jwt

from inkhall.core.config import settings
from inkhall.core.security import create_access_token
from tests.factories import auth_header, make_user


class TestRegister:
    def test_register_student_returns_user_and_token(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={
                "email": "new@inkhall.com",
                "password": "secret123",
                "name": "New Student",
                "role": "student",
            },
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "new@inkhall.com"
        assert body["user"]["status"] == "active"

        payload = jwt.decode(body["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == str(body["user"]["id"])
        assert payload["role"] == "student"

    def test_duplicate_email_conflicts(self, client, student):
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": student.email, "password": "secret123", "name": "Again", "role": "student"},
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "Email already registered"

    def test_cannot_self_register_as_admin(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "boss@inkhall.com", "password": "secret123", "name": "Boss", "role": "admin"},
        )
        assert resp.status_code == 400
        fields = [err["field"] for err in resp.json()["errors"]]
        assert "role" in fields

    def test_short_password_rejected(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "short@inkhall.com", "password": "123", "name": "Short", "role": "teacher"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"


class TestLogin:
    def test_login_success(self, client, real_password_user):
        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "login@inkhall.com", "password": "secret123"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == real_password_user.id
        assert resp.json()["access_token"]

    def test_wrong_password(self, client, real_password_user):
        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "login@inkhall.com", "password": "wrong-one"},
        )
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_unknown_email(self, client):
        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@inkhall.com", "password": "secret123"},
        )
        assert resp.status_code == 401

    def test_suspended_user_cannot_login(self, client, db_session, real_password_user):
        real_password_user.status = "suspended"
        db_session.commit()
        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "login@inkhall.com", "password": "secret123"},
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is disabled"

    def test_oauth2_form_login(self, client, real_password_user):
        resp = client.post(
            "/api/v1/auth/token",
            data={"username": "login@inkhall.com", "password": "secret123"},
        )
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"


class TestAuthGate:
    def test_missing_token(self, client):
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"message": "Authentication token required"}

    def test_garbage_token(self, client):
        resp = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token"

    def test_expired_token(self, client, student):
        from datetime import timedelta

        token = create_access_token({"sub": str(student.id)}, expires_delta=timedelta(minutes=-1))
        resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Token has expired"

    def test_token_for_deleted_user(self, client):
        token = create_access_token({"sub": "9999"})
        resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_suspended_user_token_rejected(self, client, db_session):
        user = make_user(db_session, email="gone@inkhall.com", role="student", status="suspended")
        resp = client.get("/api/v1/auth/me", headers=auth_header(user))
        assert resp.status_code == 401

    def test_me(self, client, teacher):
        resp = client.get("/api/v1/auth/me", headers=auth_header(teacher))
        assert resp.status_code == 200
        assert resp.json()["role"] == "teacher"

    def test_wrong_role_is_forbidden(self, client, student):
        resp = client.get("/api/v1/users/", headers=auth_header(student))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Insufficient permissions"


class TestChangePassword:
    def test_wrong_current_password(self, client, real_password_user):
        resp = client.put(
            "/api/v1/auth/change-password",
            json={"current_password": "nope", "new_password": "another123"},
            headers=auth_header(real_password_user),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Current password is incorrect"

    def test_change_then_login_with_new_password(self, client, real_password_user):
        resp = client.put(
            "/api/v1/auth/change-password",
            json={"current_password": "secret123", "new_password": "another123"},
            headers=auth_header(real_password_user),
        )
        assert resp.status_code == 200

        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "login@inkhall.com", "password": "another123"},
        )
        assert resp.status_code == 200
