# inkhall/schemas/common.py
import math
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict

from inkhall.core.timeutils import as_utc

T = TypeVar("T")

# 无时区的输入/数据库值一律按 UTC 处理
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class Message(BaseModel):
    message: str


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Page(BaseModel, Generic[T]):
    data: list[T]
    pagination: PaginationMeta

    @classmethod
    def build(cls, items: list, *, total: int, page: int, limit: int) -> "Page[T]":
        return cls(
            data=items,
            pagination=PaginationMeta(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit) if limit else 0,
            ),
        )


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class CourseBrief(BaseModel):
    id: int
    title: str
    start_time: UTCDateTime
    end_time: UTCDateTime
    teacher_id: int

    model_config = ConfigDict(from_attributes=True)


class PackageBrief(BaseModel):
    id: int
    name: str
    total_hours: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentBrief(BaseModel):
    id: int
    amount: Decimal
    method: str
    status: str
    paid_at: UTCDateTime | None = None

    model_config = ConfigDict(from_attributes=True)
