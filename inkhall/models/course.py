# inkhall/models/course.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from inkhall.core.timeutils import utcnow
from inkhall.db.base_class import Base
from inkhall.models.enums import CourseStatus, EnrollmentStatus

class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_courses_time_window"),
        CheckConstraint("enrolled_count >= 0", name="ck_courses_enrolled_nonneg"),
        CheckConstraint("enrolled_count <= capacity", name="ck_courses_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # 半开区间 [start_time, end_time)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)

    capacity = Column(Integer, nullable=False, default=20)
    # 与 enrollments 行数保持一致，只能在同一事务里和 enrollment 一起改
    enrolled_count = Column(Integer, nullable=False, default=0)
    classroom = Column(String(100), nullable=True)

    # 状态：scheduled / in_progress / completed / cancelled
    status = Column(String(20), nullable=False, default=CourseStatus.SCHEDULED.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    teacher = relationship("User", lazy="joined")
    enrollments = relationship("Enrollment", back_populates="course")


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # 状态：enrolled / attended / absent / cancelled
    status = Column(String(20), nullable=False, default=EnrollmentStatus.ENROLLED.value)
    enrolled_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    student = relationship("User", lazy="joined")
    course = relationship("Course", back_populates="enrollments")
