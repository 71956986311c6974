# inkhall/models/payment.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Numeric,
    ForeignKey,
)
from sqlalchemy.orm import relationship
from inkhall.core.timeutils import utcnow
from inkhall.db.base_class import Base
from inkhall.models.enums import PaymentStatus

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("lesson_packages.id"), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    # cash / wechat / alipay / bank_transfer
    method = Column(String(20), nullable=False)
    # pending / paid / failed / refunded
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)

    # 只有变成 paid 时才写
    paid_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    student = relationship("User", lazy="joined")
    package = relationship("LessonPackage", back_populates="payments")
