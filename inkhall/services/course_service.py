# inkhall/services/course_service.py
"""
Course scheduling and enrollment.

A teacher's scheduled/in-progress courses never overlap: time windows are
half-open, so a course ending at 12:00 and one starting at 12:00 do not
clash. ``Course.enrolled_count`` mirrors the number of enrollment rows and
is only changed together with them inside one atomic unit.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from inkhall.core.config import settings
from inkhall.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from inkhall.core.security import is_admin, is_student
from inkhall.core.timeutils import as_utc, utcnow
from inkhall.db.transaction import atomic
from inkhall.models.attendance import AttendanceRecord
from inkhall.models.course import Course, Enrollment
from inkhall.models.enums import (
    BLOCKING_COURSE_STATUSES,
    COURSE_TRANSITIONS,
    CourseStatus,
    UserRole,
    UserStatus,
)
from inkhall.models.user import User
from inkhall.schemas.course import CourseCreate, CourseUpdate
from inkhall.services.pagination import paginate

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("title", "start_time", "end_time", "capacity", "status")


def get_course(db: Session, course_id: int) -> Optional[Course]:
    return db.get(Course, course_id)


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = get_course(db, course_id)
    if course is None:
        raise NotFoundError("Course not found")
    return course


def ensure_can_manage(course: Course, user: User) -> None:
    """Only the course's own teacher or an admin may change it."""
    if course.teacher_id != user.id and not is_admin(user):
        raise PermissionDenied("Insufficient permissions")


def _validate_window(start: datetime, end: datetime) -> None:
    if as_utc(end) <= as_utc(start):
        raise ValidationError(
            "End time must be later than start time",
            errors=[{"field": "end_time", "message": "must be later than start_time"}],
        )


def find_conflicting_course(
    db: Session,
    *,
    teacher_id: int,
    start: datetime,
    end: datetime,
    exclude_course_id: int | None = None,
) -> Optional[Course]:
    """
    First scheduled/in-progress course of ``teacher_id`` whose window
    intersects ``[start, end)``.
    """
    query = db.query(Course).filter(
        Course.teacher_id == teacher_id,
        Course.status.in_(BLOCKING_COURSE_STATUSES),
        Course.start_time < as_utc(end),
        Course.end_time > as_utc(start),
    )
    if exclude_course_id is not None:
        query = query.filter(Course.id != exclude_course_id)
    return query.order_by(Course.start_time.asc()).first()


def _resolve_teacher(db: Session, *, actor: User, teacher_id: int | None) -> User:
    if teacher_id is None or teacher_id == actor.id:
        teacher = actor
    elif is_admin(actor):
        teacher = db.get(User, teacher_id)
    else:
        raise PermissionDenied("Teachers can only schedule their own courses")

    if (
        teacher is None
        or teacher.role != UserRole.TEACHER.value
        or teacher.status != UserStatus.ACTIVE.value
    ):
        raise ValidationError("Specified teacher does not exist or is not an active teacher")
    return teacher


def create_course(db: Session, *, actor: User, obj_in: CourseCreate) -> Course:
    start, end = as_utc(obj_in.start_time), as_utc(obj_in.end_time)
    _validate_window(start, end)
    if start <= utcnow():
        raise ValidationError(
            "Course start time cannot be in the past",
            errors=[{"field": "start_time", "message": "must be in the future"}],
        )

    teacher = _resolve_teacher(db, actor=actor, teacher_id=obj_in.teacher_id)

    conflict = find_conflicting_course(db, teacher_id=teacher.id, start=start, end=end)
    if conflict is not None:
        raise ConflictError(
            f"Teacher already has course {conflict.id} scheduled in this time window"
        )

    course = Course(
        teacher_id=teacher.id,
        title=obj_in.title,
        description=obj_in.description,
        start_time=start,
        end_time=end,
        capacity=obj_in.capacity or settings.DEFAULT_COURSE_CAPACITY,
        enrolled_count=0,
        classroom=obj_in.classroom,
        status=CourseStatus.SCHEDULED.value,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s scheduled for teacher %s", course.id, teacher.id)
    return course


def update_course(
    db: Session,
    *,
    course: Course,
    actor: User,
    obj_in: CourseUpdate,
) -> Course:
    ensure_can_manage(course, actor)
    update_data = obj_in.model_dump(exclude_unset=True)
    # 非空字段传 null 等于没传
    for key in _REQUIRED_FIELDS:
        if key in update_data and update_data[key] is None:
            update_data.pop(key)

    new_status = update_data.get("status")
    if new_status is not None and new_status != course.status:
        if new_status not in COURSE_TRANSITIONS.get(course.status, set()):
            raise ConflictError(
                f"Cannot change course status from {course.status} to {new_status}"
            )

    if "capacity" in update_data and update_data["capacity"] < course.enrolled_count:
        raise ConflictError(
            f"Capacity cannot be lower than the {course.enrolled_count} enrolled students"
        )

    start = as_utc(update_data.get("start_time", course.start_time))
    end = as_utc(update_data.get("end_time", course.end_time))
    times_changed = "start_time" in update_data or "end_time" in update_data
    if times_changed:
        _validate_window(start, end)

    # 只要课程仍然占用时间段，就要重新检查冲突
    effective_status = new_status or course.status
    if times_changed and effective_status in BLOCKING_COURSE_STATUSES:
        conflict = find_conflicting_course(
            db,
            teacher_id=course.teacher_id,
            start=start,
            end=end,
            exclude_course_id=course.id,
        )
        if conflict is not None:
            raise ConflictError(
                f"Teacher already has course {conflict.id} scheduled in this time window"
            )

    if times_changed:
        update_data["start_time"] = start
        update_data["end_time"] = end

    for field, value in update_data.items():
        setattr(course, field, value)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def delete_course(db: Session, *, course: Course, actor: User) -> None:
    ensure_can_manage(course, actor)
    if course.status in (CourseStatus.IN_PROGRESS.value, CourseStatus.COMPLETED.value):
        raise ConflictError("Courses in progress or completed cannot be deleted")

    course_id = course.id
    with atomic(db):
        db.query(AttendanceRecord).filter(AttendanceRecord.course_id == course_id).delete(
            synchronize_session=False
        )
        for enrollment in list(course.enrollments):
            db.delete(enrollment)
        db.delete(course)
    logger.info("Course %s deleted by user %s", course_id, actor.id)


def list_courses(
    db: Session,
    *,
    viewer: User,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    teacher_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[List[Course], int]:
    query = db.query(Course)
    if status:
        query = query.filter(Course.status == status)
    if teacher_id is not None:
        query = query.filter(Course.teacher_id == teacher_id)
    if start_date is not None:
        query = query.filter(Course.start_time >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(Course.start_time <= as_utc(end_date))

    # 学生只能看到自己报名的课程
    if is_student(viewer):
        enrolled_ids = select(Enrollment.course_id).where(Enrollment.student_id == viewer.id)
        query = query.filter(Course.id.in_(enrolled_ids))

    query = query.order_by(Course.start_time.asc(), Course.id.asc())
    return paginate(query, page=page, limit=limit)


def get_enrollment(db: Session, *, student_id: int, course_id: int) -> Optional[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
        .first()
    )


def list_enrollments(db: Session, *, course_id: int) -> List[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
        .all()
    )


def get_course_for_viewer(db: Session, *, course_id: int, viewer: User) -> Course:
    course = get_course_or_404(db, course_id)
    if is_student(viewer) and get_enrollment(db, student_id=viewer.id, course_id=course_id) is None:
        raise PermissionDenied("Insufficient permissions")
    return course


def enroll_student(db: Session, *, course_id: int, student: User) -> Enrollment:
    course = get_course_or_404(db, course_id)
    if course.status != CourseStatus.SCHEDULED.value:
        raise ConflictError("Course is no longer open for enrollment")
    if get_enrollment(db, student_id=student.id, course_id=course_id) is not None:
        raise ConflictError("Already enrolled in this course")
    if course.enrolled_count >= course.capacity:
        raise ConflictError("Course is full")

    with atomic(db):
        # 条件自增：并发报名时由数据库保证不超过容量
        updated = (
            db.query(Course)
            .filter(
                Course.id == course_id,
                Course.status == CourseStatus.SCHEDULED.value,
                Course.enrolled_count < Course.capacity,
            )
            .update(
                {Course.enrolled_count: Course.enrolled_count + 1},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise ConflictError("Course is full")
        enrollment = Enrollment(student_id=student.id, course_id=course_id)
        db.add(enrollment)

    db.refresh(enrollment)
    db.refresh(course)
    logger.info(
        "Student %s enrolled in course %s (%s/%s)",
        student.id, course_id, course.enrolled_count, course.capacity,
    )
    return enrollment


def cancel_enrollment(db: Session, *, course_id: int, student: User) -> None:
    enrollment = get_enrollment(db, student_id=student.id, course_id=course_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")

    course = get_course_or_404(db, course_id)
    if course.status != CourseStatus.SCHEDULED.value:
        raise ConflictError("Course has already started; enrollment cannot be cancelled")

    # 已经点过名的报名不能取消，出勤记录必须对应一条报名
    attended = (
        db.query(AttendanceRecord.id)
        .filter(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.course_id == course_id,
        )
        .first()
    )
    if attended is not None:
        raise ConflictError("Attendance has already been recorded; enrollment cannot be cancelled")

    with atomic(db):
        db.delete(enrollment)
        updated = (
            db.query(Course)
            .filter(Course.id == course_id, Course.enrolled_count > 0)
            .update(
                {Course.enrolled_count: Course.enrolled_count - 1},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise ConflictError("Enrollment counter is out of sync")

    db.refresh(course)
    logger.info("Student %s cancelled enrollment in course %s", student.id, course_id)
