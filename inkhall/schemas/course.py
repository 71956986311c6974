# inkhall/schemas/course.py
from pydantic import BaseModel, ConfigDict, Field

from inkhall.models.enums import CourseStatus, EnrollmentStatus
from inkhall.schemas.common import UTCDateTime, UserSummary


class CourseBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    classroom: str | None = Field(default=None, max_length=100)


class CourseCreate(CourseBase):
    capacity: int | None = Field(default=None, ge=1)
    # 管理员可以指定老师；老师创建时默认是自己
    teacher_id: int | None = None


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_time: UTCDateTime | None = None
    end_time: UTCDateTime | None = None
    capacity: int | None = Field(default=None, ge=1)
    classroom: str | None = Field(default=None, max_length=100)
    status: CourseStatus | None = None

    model_config = ConfigDict(use_enum_values=True)


class CoursePublic(CourseBase):
    id: int
    teacher_id: int
    capacity: int
    enrolled_count: int
    status: CourseStatus
    teacher: UserSummary | None = None
    created_at: UTCDateTime | None = None
    updated_at: UTCDateTime | None = None

    model_config = ConfigDict(from_attributes=True)


class EnrollmentPublic(BaseModel):
    id: int
    student_id: int
    course_id: int
    status: EnrollmentStatus
    enrolled_at: UTCDateTime
    student: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class CourseDetail(CoursePublic):
    students: list[EnrollmentPublic] = []
