# inkhall/schemas/attendance.py
from pydantic import BaseModel, ConfigDict, Field

from inkhall.models.enums import AttendanceStatus
from inkhall.schemas.common import CourseBrief, UTCDateTime, UserSummary


class AttendanceCreate(BaseModel):
    student_id: int
    course_id: int
    status: AttendanceStatus
    notes: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class AttendanceBatchItem(BaseModel):
    student_id: int
    status: AttendanceStatus
    notes: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class AttendanceBatchCreate(BaseModel):
    course_id: int
    records: list[AttendanceBatchItem] = Field(min_length=1)


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus
    notes: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class AttendancePublic(BaseModel):
    id: int
    student_id: int
    course_id: int
    status: AttendanceStatus
    notes: str | None = None
    recorded_at: UTCDateTime
    student: UserSummary | None = None
    course: CourseBrief | None = None

    model_config = ConfigDict(from_attributes=True)


class BatchResult(BaseModel):
    count: int
    records: list[AttendancePublic]


class CourseAttendanceStats(BaseModel):
    course_id: int
    total_students: int
    total_records: int
    present_count: int
    absent_count: int
    late_count: int
    leave_count: int
    attendance_rate: float
