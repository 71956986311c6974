# inkhall/models/attendance.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from inkhall.core.timeutils import utcnow
from inkhall.db.base_class import Base

class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        # 每个学生每门课最多一条
        UniqueConstraint("student_id", "course_id", name="uq_attendance_student_course"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    # 状态：present / absent / late / leave
    status = Column(String(20), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    student = relationship("User", lazy="joined")
    course = relationship("Course", lazy="joined")
