# inkhall/api/v1/endpoints/courses.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inkhall.api.deps import PageParams, page_params
from inkhall.core.security import get_current_staff, get_current_student, get_current_user
from inkhall.db.session import get_db
from inkhall.models.enums import CourseStatus
from inkhall.models.user import User
from inkhall.schemas.common import Message, Page
from inkhall.schemas.course import (
    CourseCreate,
    CourseDetail,
    CoursePublic,
    CourseUpdate,
    EnrollmentPublic,
)
from inkhall.services import course_service

router = APIRouter()


@router.get("/", response_model=Page[CoursePublic])
def list_courses(
    course_status: CourseStatus | None = Query(None, alias="status"),
    teacher_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    课程列表；学生只能看到自己报名的课程。
    """
    courses, total = course_service.list_courses(
        db,
        viewer=current_user,
        page=paging.page,
        limit=paging.limit,
        status=course_status.value if course_status else None,
        teacher_id=teacher_id,
        start_date=start_date,
        end_date=end_date,
    )
    return Page[CoursePublic].build(courses, total=total, page=paging.page, limit=paging.limit)


@router.post("/", response_model=CoursePublic, status_code=status.HTTP_201_CREATED)
def create_course(
    obj_in: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    return course_service.create_course(db, actor=current_user, obj_in=obj_in)


@router.get("/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    course = course_service.get_course_for_viewer(db, course_id=course_id, viewer=current_user)
    detail = CourseDetail.model_validate(course)
    detail.students = [
        EnrollmentPublic.model_validate(enrollment)
        for enrollment in course_service.list_enrollments(db, course_id=course_id)
    ]
    return detail


@router.put("/{course_id}", response_model=CoursePublic)
def update_course(
    course_id: int,
    obj_in: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    course = course_service.get_course_or_404(db, course_id)
    return course_service.update_course(db, course=course, actor=current_user, obj_in=obj_in)


@router.delete("/{course_id}", response_model=Message)
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    course = course_service.get_course_or_404(db, course_id)
    course_service.delete_course(db, course=course, actor=current_user)
    return Message(message="Course deleted")


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentPublic,
    status_code=status.HTTP_201_CREATED,
)
def enroll(
    course_id: int,
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    return course_service.enroll_student(db, course_id=course_id, student=current_student)


@router.delete("/{course_id}/enroll", response_model=Message)
def cancel_enrollment(
    course_id: int,
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    course_service.cancel_enrollment(db, course_id=course_id, student=current_student)
    return Message(message="Enrollment cancelled")


@router.get("/{course_id}/students", response_model=List[EnrollmentPublic])
def list_course_students(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    """
    课程老师或管理员查看报名学生。
    """
    course = course_service.get_course_or_404(db, course_id)
    course_service.ensure_can_manage(course, current_user)
    return course_service.list_enrollments(db, course_id=course_id)
