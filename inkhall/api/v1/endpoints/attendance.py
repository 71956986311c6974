# inkhall/api/v1/endpoints/attendance.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inkhall.api.deps import PageParams, page_params
from inkhall.core.security import get_current_staff, get_current_user
from inkhall.db.session import get_db
from inkhall.models.enums import AttendanceStatus
from inkhall.models.user import User
from inkhall.schemas.attendance import (
    AttendanceBatchCreate,
    AttendanceCreate,
    AttendancePublic,
    AttendanceUpdate,
    BatchResult,
    CourseAttendanceStats,
)
from inkhall.schemas.common import Message, Page
from inkhall.services import attendance_service

router = APIRouter()


@router.get("/", response_model=Page[AttendancePublic])
def list_attendance(
    course_id: int | None = None,
    student_id: int | None = None,
    attendance_status: AttendanceStatus | None = Query(None, alias="status"),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    records, total = attendance_service.list_records(
        db,
        viewer=current_user,
        page=paging.page,
        limit=paging.limit,
        course_id=course_id,
        student_id=student_id,
        status=attendance_status.value if attendance_status else None,
        start_date=start_date,
        end_date=end_date,
    )
    return Page[AttendancePublic].build(records, total=total, page=paging.page, limit=paging.limit)


@router.post("/", response_model=AttendancePublic, status_code=status.HTTP_201_CREATED)
def create_attendance(
    obj_in: AttendanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    return attendance_service.create_record(db, actor=current_user, obj_in=obj_in)


@router.post("/batch", response_model=BatchResult, status_code=status.HTTP_201_CREATED)
def create_attendance_batch(
    obj_in: AttendanceBatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    """
    批量点名：任何一条不合法，整批都不写入。
    """
    records = attendance_service.create_batch(db, actor=current_user, obj_in=obj_in)
    return BatchResult(count=len(records), records=records)


@router.get("/course/{course_id}/statistics", response_model=CourseAttendanceStats)
def course_attendance_statistics(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    return attendance_service.course_statistics(db, course_id=course_id, actor=current_user)


@router.get("/{record_id}", response_model=AttendancePublic)
def get_attendance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return attendance_service.get_record_for_viewer(db, record_id=record_id, viewer=current_user)


@router.put("/{record_id}", response_model=AttendancePublic)
def update_attendance(
    record_id: int,
    obj_in: AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    record = attendance_service.get_record_or_404(db, record_id)
    return attendance_service.update_record(db, record=record, actor=current_user, obj_in=obj_in)


@router.delete("/{record_id}", response_model=Message)
def delete_attendance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    record = attendance_service.get_record_or_404(db, record_id)
    attendance_service.delete_record(db, record=record, actor=current_user)
    return Message(message="Attendance record deleted")
