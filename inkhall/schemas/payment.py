# inkhall/schemas/payment.py
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from inkhall.models.enums import PaymentMethod, PaymentStatus
from inkhall.schemas.common import PackageBrief, UTCDateTime, UserSummary


class PaymentCreate(BaseModel):
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    student_id: int
    package_id: int | None = None
    notes: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    notes: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class PaymentPublic(BaseModel):
    id: int
    student_id: int
    package_id: int | None = None
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    notes: str | None = None
    paid_at: UTCDateTime | None = None
    created_at: UTCDateTime
    student: UserSummary | None = None
    package: PackageBrief | None = None

    model_config = ConfigDict(from_attributes=True)


class MethodStat(BaseModel):
    method: str
    count: int
    amount: float


class PaymentOverview(BaseModel):
    total_payments: int
    paid_payments: int
    pending_payments: int
    failed_payments: int
    refunded_payments: int
    total_amount: float
    paid_amount: float
    method_stats: list[MethodStat]


class MonthlyPayment(BaseModel):
    month: int
    count: int
    amount: float


class MonthlyPaymentStats(BaseModel):
    year: int
    monthly_data: list[MonthlyPayment]
