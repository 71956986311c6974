# inkhall/schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from inkhall.models.enums import UserRole, UserStatus
from inkhall.schemas.common import UTCDateTime


class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    role: UserRole


class UserCreate(UserBase):
    """管理员创建用户；密码由系统生成"""
    status: UserStatus = UserStatus.ACTIVE

    model_config = ConfigDict(use_enum_values=True)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    status: UserStatus | None = None  # 只有管理员可以改

    model_config = ConfigDict(use_enum_values=True)


class UserPublic(UserBase):
    id: int
    status: UserStatus
    created_at: UTCDateTime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreated(BaseModel):
    user: UserPublic
    # 只返回这一次，需要通过安全渠道交给用户
    temp_password: str
