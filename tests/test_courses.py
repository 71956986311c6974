from datetime import timedelta

import pytest

from inkhall.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from inkhall.models.attendance import AttendanceRecord
from inkhall.models.course import Course, Enrollment
from inkhall.schemas.attendance import AttendanceCreate
from inkhall.schemas.course import CourseCreate, CourseUpdate
from inkhall.services import attendance_service, course_service
from tests.factories import auth_header, enroll, make_course, make_user


def _create(db, actor, start, hours=2, **extra):
    return course_service.create_course(
        db,
        actor=actor,
        obj_in=CourseCreate(
            title="Seal Script",
            start_time=start,
            end_time=start + timedelta(hours=hours),
            **extra,
        ),
    )


class TestScheduling:
    def test_overlap_is_rejected_but_touching_is_fine(self, db_session, teacher, tomorrow):
        """10-12 exists; 11-13 clashes, 12-13 only touches."""
        _create(db_session, teacher, tomorrow)

        with pytest.raises(ConflictError):
            _create(db_session, teacher, tomorrow + timedelta(hours=1))

        later = _create(db_session, teacher, tomorrow + timedelta(hours=2), hours=1)
        assert later.id is not None

    def test_other_teacher_same_slot_is_fine(self, db_session, teacher, other_teacher, tomorrow):
        _create(db_session, teacher, tomorrow)
        assert _create(db_session, other_teacher, tomorrow).teacher_id == other_teacher.id

    def test_cancelled_course_does_not_block(self, db_session, teacher, tomorrow):
        make_course(db_session, teacher=teacher, start=tomorrow, status="cancelled")
        assert _create(db_session, teacher, tomorrow).status == "scheduled"

    def test_default_capacity(self, db_session, teacher, tomorrow):
        course = _create(db_session, teacher, tomorrow)
        assert course.capacity == 20
        assert course.enrolled_count == 0

    def test_end_before_start(self, db_session, teacher, tomorrow):
        with pytest.raises(ValidationError):
            course_service.create_course(
                db_session,
                actor=teacher,
                obj_in=CourseCreate(title="Bad", start_time=tomorrow, end_time=tomorrow),
            )

    def test_start_in_past(self, db_session, teacher, tomorrow):
        with pytest.raises(ValidationError):
            _create(db_session, teacher, tomorrow - timedelta(days=3))

    def test_admin_schedules_for_teacher(self, db_session, admin, teacher, tomorrow):
        course = _create(db_session, admin, tomorrow, teacher_id=teacher.id)
        assert course.teacher_id == teacher.id

    def test_admin_must_name_an_active_teacher(self, db_session, admin, student, tomorrow):
        with pytest.raises(ValidationError):
            _create(db_session, admin, tomorrow, teacher_id=student.id)

        inactive = make_user(db_session, email="idle@inkhall.com", role="teacher", status="inactive")
        with pytest.raises(ValidationError):
            _create(db_session, admin, tomorrow, teacher_id=inactive.id)

    def test_teacher_cannot_schedule_for_colleague(self, db_session, teacher, other_teacher, tomorrow):
        with pytest.raises(PermissionDenied):
            _create(db_session, teacher, tomorrow, teacher_id=other_teacher.id)


class TestUpdate:
    def test_moving_into_overlap_is_rejected(self, db_session, teacher, tomorrow):
        first = _create(db_session, teacher, tomorrow)
        second = _create(db_session, teacher, tomorrow + timedelta(hours=3))

        with pytest.raises(ConflictError):
            course_service.update_course(
                db_session,
                course=second,
                actor=teacher,
                obj_in=CourseUpdate(start_time=tomorrow + timedelta(hours=1)),
            )
        # moving a course within its own window never clashes with itself
        moved = course_service.update_course(
            db_session,
            course=first,
            actor=teacher,
            obj_in=CourseUpdate(end_time=tomorrow + timedelta(hours=3)),
        )
        assert moved.end_time.replace(tzinfo=None) == (tomorrow + timedelta(hours=3)).replace(tzinfo=None)

    def test_capacity_cannot_drop_below_enrolled(self, db_session, teacher, course, student, other_student):
        enroll(db_session, course=course, student=student)
        enroll(db_session, course=course, student=other_student)

        with pytest.raises(ConflictError):
            course_service.update_course(
                db_session, course=course, actor=teacher, obj_in=CourseUpdate(capacity=1)
            )
        updated = course_service.update_course(
            db_session, course=course, actor=teacher, obj_in=CourseUpdate(capacity=2)
        )
        assert updated.capacity == 2

    def test_status_machine(self, db_session, teacher, course):
        def move(status):
            return course_service.update_course(
                db_session, course=course, actor=teacher, obj_in=CourseUpdate(status=status)
            )

        with pytest.raises(ConflictError):
            move("completed")
        assert move("in_progress").status == "in_progress"
        with pytest.raises(ConflictError):
            move("scheduled")
        assert move("completed").status == "completed"
        with pytest.raises(ConflictError):
            move("cancelled")

    def test_only_owner_or_admin(self, db_session, other_teacher, admin, course):
        with pytest.raises(PermissionDenied):
            course_service.update_course(
                db_session, course=course, actor=other_teacher, obj_in=CourseUpdate(title="Mine")
            )
        updated = course_service.update_course(
            db_session, course=course, actor=admin, obj_in=CourseUpdate(title="Renamed")
        )
        assert updated.title == "Renamed"


class TestDelete:
    def test_in_progress_cannot_be_deleted(self, db_session, teacher, tomorrow):
        course = make_course(db_session, teacher=teacher, start=tomorrow, status="in_progress")
        with pytest.raises(ConflictError):
            course_service.delete_course(db_session, course=course, actor=teacher)

    def test_delete_removes_enrollments_and_attendance(self, db_session, teacher, course, student):
        enroll(db_session, course=course, student=student)
        db_session.add(AttendanceRecord(student_id=student.id, course_id=course.id, status="present"))
        db_session.commit()
        course_id = course.id

        course_service.delete_course(db_session, course=course, actor=teacher)

        assert db_session.get(Course, course_id) is None
        assert db_session.query(Enrollment).filter(Enrollment.course_id == course_id).count() == 0
        assert (
            db_session.query(AttendanceRecord).filter(AttendanceRecord.course_id == course_id).count()
            == 0
        )


class TestEnrollment:
    def test_capacity_one(self, db_session, teacher, student, other_student, tomorrow):
        course = make_course(db_session, teacher=teacher, start=tomorrow, capacity=1)

        course_service.enroll_student(db_session, course_id=course.id, student=student)
        with pytest.raises(ConflictError, match="Course is full"):
            course_service.enroll_student(db_session, course_id=course.id, student=other_student)

        db_session.refresh(course)
        assert course.enrolled_count == 1
        assert db_session.query(Enrollment).filter(Enrollment.course_id == course.id).count() == 1

    def test_duplicate_enrollment(self, db_session, course, student):
        course_service.enroll_student(db_session, course_id=course.id, student=student)
        with pytest.raises(ConflictError, match="Already enrolled"):
            course_service.enroll_student(db_session, course_id=course.id, student=student)

    def test_only_scheduled_courses_accept_students(self, db_session, teacher, student, tomorrow):
        course = make_course(db_session, teacher=teacher, start=tomorrow, status="in_progress")
        with pytest.raises(ConflictError):
            course_service.enroll_student(db_session, course_id=course.id, student=student)

    def test_cancel_twice(self, db_session, course, student):
        course_service.enroll_student(db_session, course_id=course.id, student=student)
        course_service.cancel_enrollment(db_session, course_id=course.id, student=student)

        db_session.refresh(course)
        assert course.enrolled_count == 0
        with pytest.raises(NotFoundError):
            course_service.cancel_enrollment(db_session, course_id=course.id, student=student)

    def test_cancel_after_start(self, db_session, course, student, teacher):
        course_service.enroll_student(db_session, course_id=course.id, student=student)
        course.status = "in_progress"
        db_session.commit()
        with pytest.raises(ConflictError):
            course_service.cancel_enrollment(db_session, course_id=course.id, student=student)

    def test_cancel_refused_once_attendance_recorded(self, db_session, course, student, teacher):
        course_service.enroll_student(db_session, course_id=course.id, student=student)
        attendance_service.create_record(
            db_session,
            actor=teacher,
            obj_in=AttendanceCreate(student_id=student.id, course_id=course.id, status="present"),
        )

        with pytest.raises(ConflictError, match="Attendance has already been recorded"):
            course_service.cancel_enrollment(db_session, course_id=course.id, student=student)

        db_session.refresh(course)
        assert course.enrolled_count == 1
        assert course_service.get_enrollment(db_session, student_id=student.id, course_id=course.id)
        assert db_session.query(AttendanceRecord).filter(AttendanceRecord.course_id == course.id).count() == 1


class TestCourseApi:
    def test_create_via_api(self, client, teacher, tomorrow):
        resp = client.post(
            "/api/v1/courses/",
            json={
                "title": "Running Script",
                "start_time": tomorrow.isoformat(),
                "end_time": (tomorrow + timedelta(hours=2)).isoformat(),
                "classroom": "Room A",
            },
            headers=auth_header(teacher),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["teacher"]["id"] == teacher.id
        assert body["capacity"] == 20

    def test_student_cannot_create(self, client, student, tomorrow):
        resp = client.post(
            "/api/v1/courses/",
            json={
                "title": "Nope",
                "start_time": tomorrow.isoformat(),
                "end_time": (tomorrow + timedelta(hours=1)).isoformat(),
            },
            headers=auth_header(student),
        )
        assert resp.status_code == 403

    def test_overlap_returns_409(self, client, teacher, course, tomorrow):
        resp = client.post(
            "/api/v1/courses/",
            json={
                "title": "Clash",
                "start_time": (tomorrow + timedelta(hours=1)).isoformat(),
                "end_time": (tomorrow + timedelta(hours=3)).isoformat(),
            },
            headers=auth_header(teacher),
        )
        assert resp.status_code == 409

    def test_enroll_and_cancel_flow(self, client, course, student):
        resp = client.post(f"/api/v1/courses/{course.id}/enroll", headers=auth_header(student))
        assert resp.status_code == 201
        assert resp.json()["student_id"] == student.id

        resp = client.delete(f"/api/v1/courses/{course.id}/enroll", headers=auth_header(student))
        assert resp.status_code == 200
        resp = client.delete(f"/api/v1/courses/{course.id}/enroll", headers=auth_header(student))
        assert resp.status_code == 404

    def test_teacher_cannot_enroll(self, client, course, teacher):
        resp = client.post(f"/api/v1/courses/{course.id}/enroll", headers=auth_header(teacher))
        assert resp.status_code == 403

    def test_students_see_only_enrolled_courses(self, client, db_session, teacher, student, course, tomorrow):
        make_course(db_session, teacher=teacher, start=tomorrow + timedelta(days=1), title="Other")
        enroll(db_session, course=course, student=student)

        resp = client.get("/api/v1/courses/", headers=auth_header(student))
        assert [c["id"] for c in resp.json()["data"]] == [course.id]
        assert resp.json()["pagination"]["total"] == 1

        resp = client.get("/api/v1/courses/", headers=auth_header(teacher))
        assert resp.json()["pagination"]["total"] == 2

    def test_detail_lists_students(self, client, db_session, course, student, other_student):
        enroll(db_session, course=course, student=student)

        resp = client.get(f"/api/v1/courses/{course.id}", headers=auth_header(student))
        assert resp.status_code == 200
        assert [s["student"]["id"] for s in resp.json()["students"]] == [student.id]

        resp = client.get(f"/api/v1/courses/{course.id}", headers=auth_header(other_student))
        assert resp.status_code == 403

    def test_student_roster_restricted_to_owner(self, client, db_session, course, student, teacher, other_teacher):
        enroll(db_session, course=course, student=student)
        resp = client.get(f"/api/v1/courses/{course.id}/students", headers=auth_header(teacher))
        assert resp.status_code == 200
        assert len(resp.json()) == 1

        resp = client.get(f"/api/v1/courses/{course.id}/students", headers=auth_header(other_teacher))
        assert resp.status_code == 403

    def test_missing_course(self, client, admin):
        resp = client.get("/api/v1/courses/999", headers=auth_header(admin))
        assert resp.status_code == 404
        assert resp.json() == {"message": "Course not found"}
