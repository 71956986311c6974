# inkhall/schemas/statistics.py
from datetime import date

from pydantic import BaseModel

from inkhall.schemas.common import UTCDateTime


class Overview(BaseModel):
    total_users: int
    total_students: int
    total_teachers: int
    total_courses: int
    total_packages: int
    total_payments: int
    total_revenue: float
    total_hours: int


class DailyConsumption(BaseModel):
    date: date
    total_records: int
    present_count: int
    absent_count: int
    late_count: int
    leave_count: int
    attendance_rate: float


class MonthlyHours(BaseModel):
    month: int
    total_records: int
    consumed_hours: int


class MonthlyRevenue(BaseModel):
    month: int
    payment_count: int
    total_revenue: float


class MonthlyHoursSeries(BaseModel):
    year: int
    monthly_data: list[MonthlyHours]


class MonthlyRevenueSeries(BaseModel):
    year: int
    monthly_data: list[MonthlyRevenue]


class TeacherStat(BaseModel):
    id: int
    name: str
    email: str
    total_courses: int
    courses_with_attendance: int
    total_attendance_records: int
    present_records: int
    absent_records: int
    attendance_rate: float


class StudentStat(BaseModel):
    id: int
    name: str
    email: str
    enrolled_courses: int
    attended_courses: int
    total_attendance_records: int
    present_records: int
    absent_records: int
    late_records: int
    leave_records: int
    attendance_rate: float


class CourseStat(BaseModel):
    id: int
    title: str
    start_time: UTCDateTime
    end_time: UTCDateTime
    capacity: int
    enrolled_count: int
    status: str
    teacher_name: str | None = None
    attendance_records: int
    present_count: int
    absent_count: int
    late_count: int
    leave_count: int
    attendance_rate: float
    enrollment_rate: float


class PackageStat(BaseModel):
    id: int
    name: str
    total_hours: int
    used_hours: int
    remaining_hours: int
    price: float
    status: str
    purchased_at: UTCDateTime
    expires_at: UTCDateTime
    student_name: str | None = None
    student_email: str | None = None
    usage_rate: float
