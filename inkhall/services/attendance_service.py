# inkhall/services/attendance_service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from inkhall.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from inkhall.core.security import is_student
from inkhall.core.timeutils import as_utc
from inkhall.db.transaction import atomic
from inkhall.models.attendance import AttendanceRecord
from inkhall.models.course import Enrollment
from inkhall.models.enums import AttendanceStatus, UserRole
from inkhall.models.user import User
from inkhall.schemas.attendance import AttendanceBatchCreate, AttendanceCreate, AttendanceUpdate
from inkhall.services import course_service
from inkhall.services.pagination import paginate
from inkhall.services.statistics_service import rate
from inkhall.services.user_service import require_user_with_role

logger = logging.getLogger(__name__)


def get_record(db: Session, record_id: int) -> Optional[AttendanceRecord]:
    return db.get(AttendanceRecord, record_id)


def get_record_or_404(db: Session, record_id: int) -> AttendanceRecord:
    record = get_record(db, record_id)
    if record is None:
        raise NotFoundError("Attendance record not found")
    return record


def get_record_for_viewer(db: Session, *, record_id: int, viewer: User) -> AttendanceRecord:
    record = get_record_or_404(db, record_id)
    if is_student(viewer) and record.student_id != viewer.id:
        raise PermissionDenied("Insufficient permissions")
    return record


def list_records(
    db: Session,
    *,
    viewer: User,
    page: int = 1,
    limit: int = 10,
    course_id: int | None = None,
    student_id: int | None = None,
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[List[AttendanceRecord], int]:
    query = db.query(AttendanceRecord)
    if course_id is not None:
        query = query.filter(AttendanceRecord.course_id == course_id)
    if student_id is not None:
        query = query.filter(AttendanceRecord.student_id == student_id)
    if status:
        query = query.filter(AttendanceRecord.status == status)
    if start_date is not None:
        query = query.filter(AttendanceRecord.recorded_at >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(AttendanceRecord.recorded_at <= as_utc(end_date))

    # 学生只能看到自己的出勤记录
    if is_student(viewer):
        query = query.filter(AttendanceRecord.student_id == viewer.id)

    query = query.order_by(AttendanceRecord.recorded_at.desc(), AttendanceRecord.id.desc())
    return paginate(query, page=page, limit=limit)


def _existing_record(db: Session, *, student_id: int, course_id: int) -> Optional[AttendanceRecord]:
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.student_id == student_id,
            AttendanceRecord.course_id == course_id,
        )
        .first()
    )


def create_record(db: Session, *, actor: User, obj_in: AttendanceCreate) -> AttendanceRecord:
    student = require_user_with_role(db, obj_in.student_id, UserRole.STUDENT)
    course = course_service.get_course_or_404(db, obj_in.course_id)
    course_service.ensure_can_manage(course, actor)

    if course_service.get_enrollment(db, student_id=student.id, course_id=course.id) is None:
        raise ValidationError("Student is not enrolled in this course")
    if _existing_record(db, student_id=student.id, course_id=course.id) is not None:
        raise ConflictError("Student already has an attendance record for this course")

    record = AttendanceRecord(
        student_id=student.id,
        course_id=course.id,
        status=obj_in.status,
        notes=obj_in.notes,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Recorded %s for student %s in course %s", record.status, student.id, course.id)
    return record


def create_batch(
    db: Session,
    *,
    actor: User,
    obj_in: AttendanceBatchCreate,
) -> List[AttendanceRecord]:
    """
    All-or-nothing: every listed student must be an enrolled student with
    no record yet, otherwise nothing is written.
    """
    course = course_service.get_course_or_404(db, obj_in.course_id)
    course_service.ensure_can_manage(course, actor)

    student_ids = [item.student_id for item in obj_in.records]
    unique_ids = set(student_ids)
    if len(unique_ids) != len(student_ids):
        raise ValidationError("Each student may appear only once in a batch")

    students = (
        db.query(User.id)
        .filter(User.id.in_(unique_ids), User.role == UserRole.STUDENT.value)
        .all()
    )
    found = {row.id for row in students}
    if found != unique_ids:
        missing = sorted(unique_ids - found)
        raise ValidationError(
            "Some students do not exist or are not students",
            errors=[{"field": "records", "message": f"invalid student ids: {missing}"}],
        )

    enrolled = {
        row.student_id
        for row in db.query(Enrollment.student_id).filter(
            Enrollment.course_id == course.id,
            Enrollment.student_id.in_(unique_ids),
        )
    }
    if enrolled != unique_ids:
        missing = sorted(unique_ids - enrolled)
        raise ValidationError(
            "Some students are not enrolled in this course",
            errors=[{"field": "records", "message": f"not enrolled: {missing}"}],
        )

    recorded = {
        row.student_id
        for row in db.query(AttendanceRecord.student_id).filter(
            AttendanceRecord.course_id == course.id,
            AttendanceRecord.student_id.in_(unique_ids),
        )
    }
    if recorded:
        raise ConflictError(
            "Some students already have attendance records",
            errors=[{"field": "records", "message": f"already recorded: {sorted(recorded)}"}],
        )

    with atomic(db):
        records = [
            AttendanceRecord(
                student_id=item.student_id,
                course_id=course.id,
                status=item.status,
                notes=item.notes,
            )
            for item in obj_in.records
        ]
        db.add_all(records)

    for record in records:
        db.refresh(record)
    logger.info("Recorded batch of %s attendance records for course %s", len(records), course.id)
    return records


def update_record(
    db: Session,
    *,
    record: AttendanceRecord,
    actor: User,
    obj_in: AttendanceUpdate,
) -> AttendanceRecord:
    course_service.ensure_can_manage(record.course, actor)
    record.status = obj_in.status
    if "notes" in obj_in.model_fields_set:
        record.notes = obj_in.notes
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_record(db: Session, *, record: AttendanceRecord, actor: User) -> None:
    course_service.ensure_can_manage(record.course, actor)
    db.delete(record)
    db.commit()


def course_statistics(db: Session, *, course_id: int, actor: User) -> dict:
    course = course_service.get_course_or_404(db, course_id)
    course_service.ensure_can_manage(course, actor)

    total_students = (
        db.query(func.count(Enrollment.id)).filter(Enrollment.course_id == course_id).scalar()
    )
    counts = dict(
        db.query(AttendanceRecord.status, func.count(AttendanceRecord.id))
        .filter(AttendanceRecord.course_id == course_id)
        .group_by(AttendanceRecord.status)
        .all()
    )
    total_records = sum(counts.values())
    present = counts.get(AttendanceStatus.PRESENT.value, 0)

    return {
        "course_id": course_id,
        "total_students": total_students or 0,
        "total_records": total_records,
        "present_count": present,
        "absent_count": counts.get(AttendanceStatus.ABSENT.value, 0),
        "late_count": counts.get(AttendanceStatus.LATE.value, 0),
        "leave_count": counts.get(AttendanceStatus.LEAVE.value, 0),
        "attendance_rate": rate(present, total_records),
    }
