# inkhall/api/v1/endpoints/payments.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inkhall.api.deps import PageParams, page_params, year_param
from inkhall.core.security import get_current_admin, get_current_user
from inkhall.db.session import get_db
from inkhall.models.enums import PaymentMethod, PaymentStatus
from inkhall.models.user import User
from inkhall.schemas.common import Message, Page
from inkhall.schemas.payment import (
    MonthlyPaymentStats,
    PaymentCreate,
    PaymentOverview,
    PaymentPublic,
    PaymentStatusUpdate,
)
from inkhall.services import payment_service

router = APIRouter()


@router.get("/", response_model=Page[PaymentPublic])
def list_payments(
    payment_status: PaymentStatus | None = Query(None, alias="status"),
    method: PaymentMethod | None = None,
    student_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payments, total = payment_service.list_payments(
        db,
        viewer=current_user,
        page=paging.page,
        limit=paging.limit,
        status=payment_status.value if payment_status else None,
        method=method.value if method else None,
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
    )
    return Page[PaymentPublic].build(payments, total=total, page=paging.page, limit=paging.limit)


@router.get("/statistics/overview", response_model=PaymentOverview)
def payment_overview(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return payment_service.payment_overview(db, start_date=start_date, end_date=end_date)


@router.get("/statistics/monthly", response_model=MonthlyPaymentStats)
def monthly_payments(
    year: int = Depends(year_param),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return payment_service.monthly_payments(db, year=year)


@router.post("/", response_model=PaymentPublic, status_code=status.HTTP_201_CREATED)
def create_payment(
    obj_in: PaymentCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return payment_service.create_payment(db, obj_in=obj_in)


@router.get("/{payment_id}", response_model=PaymentPublic)
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return payment_service.get_payment_for_viewer(db, payment_id=payment_id, viewer=current_user)


@router.put("/{payment_id}/status", response_model=PaymentPublic)
def update_payment_status(
    payment_id: int,
    obj_in: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    payment = payment_service.get_payment_or_404(db, payment_id)
    return payment_service.update_status(db, payment=payment, obj_in=obj_in)


@router.delete("/{payment_id}", response_model=Message)
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    payment = payment_service.get_payment_or_404(db, payment_id)
    payment_service.delete_payment(db, payment=payment)
    return Message(message="Payment deleted")
