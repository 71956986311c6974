# inkhall/services/statistics_service.py
"""
Read-only dashboard aggregations.

Everything here is built from SQLAlchemy expressions so user/date values
are always bound parameters, never spliced into SQL text.
"""
from datetime import datetime, timezone
from typing import List

from sqlalchemy import case, distinct, extract, func
from sqlalchemy.orm import Session

from inkhall.core.security import is_admin
from inkhall.core.timeutils import as_utc
from inkhall.models.attendance import AttendanceRecord
from inkhall.models.course import Course, Enrollment
from inkhall.models.enums import AttendanceStatus, PaymentStatus, UserRole
from inkhall.models.lesson_package import LessonPackage
from inkhall.models.payment import Payment
from inkhall.models.user import User


def rate(numerator: int, denominator: int) -> float:
    """Percentage rounded to two places; zero when there is nothing to divide by."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


def _status_count(status: AttendanceStatus):
    return func.coalesce(
        func.sum(case((AttendanceRecord.status == status.value, 1), else_=0)), 0
    )


def _year_bounds(year: int) -> tuple[datetime, datetime]:
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )


def _fill_months(rows: dict[int, dict], empty: dict) -> List[dict]:
    # 补齐没有数据的月份
    return [{"month": month, **rows.get(month, empty)} for month in range(1, 13)]


def overview(db: Session) -> dict:
    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    paid_count, revenue = (
        db.query(func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.status == PaymentStatus.PAID.value)
        .one()
    )
    return {
        "total_users": sum(role_counts.values()),
        "total_students": role_counts.get(UserRole.STUDENT.value, 0),
        "total_teachers": role_counts.get(UserRole.TEACHER.value, 0),
        "total_courses": db.query(func.count(Course.id)).scalar() or 0,
        "total_packages": db.query(func.count(LessonPackage.id)).scalar() or 0,
        "total_payments": paid_count or 0,
        "total_revenue": float(revenue or 0),
        "total_hours": int(
            db.query(func.coalesce(func.sum(LessonPackage.total_hours), 0)).scalar() or 0
        ),
    }


def daily_consumption(
    db: Session,
    *,
    viewer: User,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> List[dict]:
    day = func.date(AttendanceRecord.recorded_at).label("day")
    query = db.query(
        day,
        func.count(AttendanceRecord.id).label("total_records"),
        _status_count(AttendanceStatus.PRESENT).label("present_count"),
        _status_count(AttendanceStatus.ABSENT).label("absent_count"),
        _status_count(AttendanceStatus.LATE).label("late_count"),
        _status_count(AttendanceStatus.LEAVE).label("leave_count"),
    )
    if start_date is not None:
        query = query.filter(AttendanceRecord.recorded_at >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(AttendanceRecord.recorded_at <= as_utc(end_date))

    # 老师只能看到自己课程的统计
    if not is_admin(viewer):
        query = query.join(Course, Course.id == AttendanceRecord.course_id).filter(
            Course.teacher_id == viewer.id
        )

    rows = query.group_by(day).order_by(day.desc()).all()
    return [
        {
            "date": row.day,
            "total_records": int(row.total_records),
            "present_count": int(row.present_count),
            "absent_count": int(row.absent_count),
            "late_count": int(row.late_count),
            "leave_count": int(row.leave_count),
            "attendance_rate": rate(int(row.present_count), int(row.total_records)),
        }
        for row in rows
    ]


def monthly_hours(db: Session, *, year: int) -> List[dict]:
    """Per month: all attendance records and the present ones (lessons consumed)."""
    start, end = _year_bounds(year)
    month = extract("month", AttendanceRecord.recorded_at).label("month")
    rows = (
        db.query(
            month,
            func.count(AttendanceRecord.id).label("total_records"),
            _status_count(AttendanceStatus.PRESENT).label("consumed_hours"),
        )
        .filter(AttendanceRecord.recorded_at >= start, AttendanceRecord.recorded_at < end)
        .group_by(month)
        .all()
    )
    by_month = {
        int(row.month): {
            "total_records": int(row.total_records),
            "consumed_hours": int(row.consumed_hours),
        }
        for row in rows
    }
    return _fill_months(by_month, {"total_records": 0, "consumed_hours": 0})


def monthly_revenue(db: Session, *, year: int) -> List[dict]:
    start, end = _year_bounds(year)
    month = extract("month", Payment.paid_at).label("month")
    rows = (
        db.query(
            month,
            func.count(Payment.id).label("payment_count"),
            func.coalesce(func.sum(Payment.amount), 0).label("total_revenue"),
        )
        .filter(
            Payment.status == PaymentStatus.PAID.value,
            Payment.paid_at >= start,
            Payment.paid_at < end,
        )
        .group_by(month)
        .all()
    )
    by_month = {
        int(row.month): {
            "payment_count": int(row.payment_count),
            "total_revenue": float(row.total_revenue or 0),
        }
        for row in rows
    }
    return _fill_months(by_month, {"payment_count": 0, "total_revenue": 0.0})


def teacher_stats(db: Session) -> List[dict]:
    total_courses = func.count(distinct(Course.id)).label("total_courses")
    rows = (
        db.query(
            User.id,
            User.name,
            User.email,
            total_courses,
            func.count(distinct(AttendanceRecord.course_id)).label("courses_with_attendance"),
            func.count(AttendanceRecord.id).label("total_records"),
            _status_count(AttendanceStatus.PRESENT).label("present_records"),
            _status_count(AttendanceStatus.ABSENT).label("absent_records"),
        )
        .outerjoin(Course, Course.teacher_id == User.id)
        .outerjoin(AttendanceRecord, AttendanceRecord.course_id == Course.id)
        .filter(User.role == UserRole.TEACHER.value)
        .group_by(User.id, User.name, User.email)
        .order_by(total_courses.desc(), User.id.asc())
        .all()
    )
    return [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "total_courses": int(row.total_courses),
            "courses_with_attendance": int(row.courses_with_attendance),
            "total_attendance_records": int(row.total_records),
            "present_records": int(row.present_records),
            "absent_records": int(row.absent_records),
            "attendance_rate": rate(int(row.present_records), int(row.total_records)),
        }
        for row in rows
    ]


def student_stats(db: Session, *, viewer: User) -> List[dict]:
    teacher_id = None if is_admin(viewer) else viewer.id

    enroll_q = db.query(
        Enrollment.student_id.label("student_id"),
        func.count(Enrollment.course_id).label("enrolled_courses"),
    )
    att_q = db.query(
        AttendanceRecord.student_id.label("student_id"),
        func.count(distinct(AttendanceRecord.course_id)).label("attended_courses"),
        func.count(AttendanceRecord.id).label("total_records"),
        _status_count(AttendanceStatus.PRESENT).label("present"),
        _status_count(AttendanceStatus.ABSENT).label("absent"),
        _status_count(AttendanceStatus.LATE).label("late"),
        _status_count(AttendanceStatus.LEAVE).label("leave"),
    )
    # 老师只统计自己课程里的学生和记录
    if teacher_id is not None:
        enroll_q = enroll_q.join(Course, Course.id == Enrollment.course_id).filter(
            Course.teacher_id == teacher_id
        )
        att_q = att_q.join(Course, Course.id == AttendanceRecord.course_id).filter(
            Course.teacher_id == teacher_id
        )
    enroll_sq = enroll_q.group_by(Enrollment.student_id).subquery()
    att_sq = att_q.group_by(AttendanceRecord.student_id).subquery()

    enrolled = func.coalesce(enroll_sq.c.enrolled_courses, 0).label("enrolled_courses")
    query = (
        db.query(
            User.id,
            User.name,
            User.email,
            enrolled,
            func.coalesce(att_sq.c.attended_courses, 0).label("attended_courses"),
            func.coalesce(att_sq.c.total_records, 0).label("total_records"),
            func.coalesce(att_sq.c.present, 0).label("present"),
            func.coalesce(att_sq.c.absent, 0).label("absent"),
            func.coalesce(att_sq.c.late, 0).label("late"),
            func.coalesce(att_sq.c.leave, 0).label("leave"),
        )
        .outerjoin(enroll_sq, enroll_sq.c.student_id == User.id)
        .outerjoin(att_sq, att_sq.c.student_id == User.id)
        .filter(User.role == UserRole.STUDENT.value)
    )
    if teacher_id is not None:
        query = query.filter(enroll_sq.c.student_id.isnot(None))

    rows = query.order_by(enrolled.desc(), User.id.asc()).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "enrolled_courses": int(row.enrolled_courses),
            "attended_courses": int(row.attended_courses),
            "total_attendance_records": int(row.total_records),
            "present_records": int(row.present),
            "absent_records": int(row.absent),
            "late_records": int(row.late),
            "leave_records": int(row.leave),
            "attendance_rate": rate(int(row.present), int(row.total_records)),
        }
        for row in rows
    ]


def course_stats(
    db: Session,
    *,
    viewer: User,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> List[dict]:
    query = (
        db.query(
            Course.id,
            Course.title,
            Course.start_time,
            Course.end_time,
            Course.capacity,
            Course.enrolled_count,
            Course.status,
            User.name.label("teacher_name"),
            func.count(AttendanceRecord.id).label("attendance_records"),
            _status_count(AttendanceStatus.PRESENT).label("present_count"),
            _status_count(AttendanceStatus.ABSENT).label("absent_count"),
            _status_count(AttendanceStatus.LATE).label("late_count"),
            _status_count(AttendanceStatus.LEAVE).label("leave_count"),
        )
        .outerjoin(User, User.id == Course.teacher_id)
        .outerjoin(AttendanceRecord, AttendanceRecord.course_id == Course.id)
    )
    if not is_admin(viewer):
        query = query.filter(Course.teacher_id == viewer.id)
    if start_date is not None:
        query = query.filter(Course.start_time >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(Course.start_time <= as_utc(end_date))

    rows = (
        query.group_by(
            Course.id,
            Course.title,
            Course.start_time,
            Course.end_time,
            Course.capacity,
            Course.enrolled_count,
            Course.status,
            User.name,
        )
        .order_by(Course.start_time.desc(), Course.id.desc())
        .all()
    )
    return [
        {
            "id": row.id,
            "title": row.title,
            "start_time": row.start_time,
            "end_time": row.end_time,
            "capacity": row.capacity,
            "enrolled_count": row.enrolled_count,
            "status": row.status,
            "teacher_name": row.teacher_name,
            "attendance_records": int(row.attendance_records),
            "present_count": int(row.present_count),
            "absent_count": int(row.absent_count),
            "late_count": int(row.late_count),
            "leave_count": int(row.leave_count),
            "attendance_rate": rate(int(row.present_count), int(row.attendance_records)),
            "enrollment_rate": rate(row.enrolled_count, row.capacity),
        }
        for row in rows
    ]


def package_stats(db: Session) -> List[dict]:
    rows = (
        db.query(LessonPackage, User.name, User.email)
        .outerjoin(User, User.id == LessonPackage.student_id)
        .order_by(LessonPackage.purchased_at.desc(), LessonPackage.id.desc())
        .all()
    )
    return [
        {
            "id": package.id,
            "name": package.name,
            "total_hours": package.total_hours,
            "used_hours": package.used_hours,
            "remaining_hours": package.remaining_hours,
            "price": float(package.price),
            "status": package.status,
            "purchased_at": package.purchased_at,
            "expires_at": package.expires_at,
            "student_name": student_name,
            "student_email": student_email,
            "usage_rate": rate(package.used_hours, package.total_hours),
        }
        for package, student_name, student_email in rows
    ]
