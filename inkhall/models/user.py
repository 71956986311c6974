# inkhall/models/user.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from inkhall.db.base_class import Base
from inkhall.models.enums import UserStatus

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)  # 可重复，不唯一
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, index=True)  # 'admin' / 'teacher' / 'student'
    # 'active' / 'inactive' / 'suspended'；只有 active 可以登录
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
