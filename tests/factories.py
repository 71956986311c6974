"""Small builders for rows the tests need directly in the database."""
from datetime import timedelta

from inkhall.core.security import create_token_for_user
from inkhall.models.course import Course, Enrollment
from inkhall.models.user import User

# Pre-hashed password to avoid running bcrypt for every fixture user
FAKE_HASH = "$2b$12$hashed_password_001"


def make_user(db, *, email, role, name=None, status="active", password_hash=FAKE_HASH):
    user = User(
        email=email,
        password_hash=password_hash,
        name=name or email.split("@")[0].title(),
        role=role,
        status=status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_course(db, *, teacher, start, hours=2, capacity=20, status="scheduled", title="Regular Script"):
    course = Course(
        teacher_id=teacher.id,
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        capacity=capacity,
        enrolled_count=0,
        status=status,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def enroll(db, *, course, student):
    db.add(Enrollment(student_id=student.id, course_id=course.id))
    course.enrolled_count += 1
    db.add(course)
    db.commit()
    db.refresh(course)


def auth_header(user):
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}
