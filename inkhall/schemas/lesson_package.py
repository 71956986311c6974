# inkhall/schemas/lesson_package.py
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from inkhall.models.enums import PackageStatus, PaymentMethod
from inkhall.schemas.common import PaymentBrief, UTCDateTime, UserSummary


class PackageBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    total_hours: int = Field(ge=1)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    valid_days: int = Field(ge=1)


class PackageCreate(PackageBase):
    """管理员直接给学生开课包"""
    student_id: int


class PackagePurchase(PackageBase):
    """学生自己购买；同时生成一条已支付的付款记录"""
    payment_method: PaymentMethod

    model_config = ConfigDict(use_enum_values=True)


class PackageUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: PackageStatus | None = None

    model_config = ConfigDict(use_enum_values=True)


class ConsumeRequest(BaseModel):
    hours: int = Field(ge=1)
    course_id: int


class ConsumeResult(BaseModel):
    package_id: int
    used_hours: int
    remaining_hours: int
    status: PackageStatus


class PackagePublic(PackageBase):
    id: int
    student_id: int
    used_hours: int
    remaining_hours: int
    status: PackageStatus
    purchased_at: UTCDateTime
    expires_at: UTCDateTime
    student: UserSummary | None = None
    payments: list[PaymentBrief] = []

    model_config = ConfigDict(from_attributes=True)


class PurchaseResult(BaseModel):
    package: PackagePublic
    payment: PaymentBrief


class PackageOverview(BaseModel):
    total_packages: int
    active_packages: int
    expired_packages: int
    completed_packages: int
    cancelled_packages: int
    total_revenue: float
    total_hours: int
