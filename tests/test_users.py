from inkhall.core.security import verify_password
from inkhall.models.user import User
from tests.factories import auth_header, make_user


class TestListUsers:
    def test_pagination_and_role_filter(self, client, admin, db_session):
        for i in range(3):
            make_user(db_session, email=f"s{i}@inkhall.com", role="student")

        resp = client.get(
            "/api/v1/users/",
            params={"role": "student", "limit": 2, "page": 1},
            headers=auth_header(admin),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_search_is_case_insensitive(self, client, teacher, student):
        resp = client.get("/api/v1/users/", params={"search": "ZHANG"}, headers=auth_header(teacher))
        assert resp.status_code == 200
        emails = [u["email"] for u in resp.json()["data"]]
        assert emails == ["zhang@inkhall.com"]

    def test_limit_above_maximum_rejected(self, client, admin):
        resp = client.get("/api/v1/users/", params={"limit": 1000}, headers=auth_header(admin))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "limit"


class TestUserAccess:
    def test_student_reads_self_only(self, client, student, other_student):
        assert client.get(f"/api/v1/users/{student.id}", headers=auth_header(student)).status_code == 200
        resp = client.get(f"/api/v1/users/{other_student.id}", headers=auth_header(student))
        assert resp.status_code == 403

    def test_missing_user(self, client, admin):
        resp = client.get("/api/v1/users/4242", headers=auth_header(admin))
        assert resp.status_code == 404
        assert resp.json()["message"] == "User not found"


class TestCreateUser:
    def test_admin_creates_user_with_temp_password(self, client, admin, db_session):
        resp = client.post(
            "/api/v1/users/",
            json={"email": "t2@inkhall.com", "name": "Teacher Two", "role": "teacher"},
            headers=auth_header(admin),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert len(body["temp_password"]) == 10

        user = db_session.query(User).filter(User.email == "t2@inkhall.com").one()
        assert verify_password(body["temp_password"], user.password_hash)

    def test_teacher_cannot_create_user(self, client, teacher):
        resp = client.post(
            "/api/v1/users/",
            json={"email": "x@inkhall.com", "name": "X", "role": "student"},
            headers=auth_header(teacher),
        )
        assert resp.status_code == 403


class TestUpdateAndDelete:
    def test_student_cannot_change_own_status(self, client, student):
        resp = client.put(
            f"/api/v1/users/{student.id}",
            json={"name": "Renamed", "status": "suspended"},
            headers=auth_header(student),
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert resp.json()["status"] == "active"

    def test_cannot_update_someone_else(self, client, student, other_student):
        resp = client.put(
            f"/api/v1/users/{other_student.id}",
            json={"name": "Hacked"},
            headers=auth_header(student),
        )
        assert resp.status_code == 403

    def test_admin_changes_status(self, client, admin, student):
        resp = client.put(
            f"/api/v1/users/{student.id}",
            json={"status": "inactive"},
            headers=auth_header(admin),
        )
        assert resp.json()["status"] == "inactive"

    def test_delete_is_soft(self, client, admin, student, db_session):
        resp = client.delete(f"/api/v1/users/{student.id}", headers=auth_header(admin))
        assert resp.status_code == 200
        assert resp.json()["status"] == "suspended"

        db_session.expire_all()
        assert db_session.get(User, student.id).status == "suspended"
