# inkhall/models/lesson_package.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Numeric,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from inkhall.core.timeutils import utcnow
from inkhall.db.base_class import Base
from inkhall.models.enums import PackageStatus

class LessonPackage(Base):
    __tablename__ = "lesson_packages"
    __table_args__ = (
        CheckConstraint("used_hours >= 0", name="ck_packages_used_nonneg"),
        CheckConstraint("used_hours <= total_hours", name="ck_packages_used_le_total"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    total_hours = Column(Integer, nullable=False)
    used_hours = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False)
    valid_days = Column(Integer, nullable=False)

    purchased_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # 状态：active / expired / completed / cancelled
    status = Column(String(20), nullable=False, default=PackageStatus.ACTIVE.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    student = relationship("User", lazy="joined")
    payments = relationship("Payment", back_populates="package")

    @property
    def remaining_hours(self) -> int:
        return (self.total_hours or 0) - (self.used_hours or 0)
