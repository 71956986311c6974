# inkhall/services/payment_service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from inkhall.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from inkhall.core.security import is_student
from inkhall.core.timeutils import as_utc, utcnow
from inkhall.models.enums import PAYMENT_TRANSITIONS, PaymentStatus, UserRole
from inkhall.models.lesson_package import LessonPackage
from inkhall.models.payment import Payment
from inkhall.models.user import User
from inkhall.schemas.payment import PaymentCreate, PaymentStatusUpdate
from inkhall.services.pagination import paginate
from inkhall.services.statistics_service import monthly_revenue
from inkhall.services.user_service import require_user_with_role

logger = logging.getLogger(__name__)

# 只有还没付款的记录可以删除
_DELETABLE_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value)


def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
    return db.get(Payment, payment_id)


def get_payment_or_404(db: Session, payment_id: int) -> Payment:
    payment = get_payment(db, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


def get_payment_for_viewer(db: Session, *, payment_id: int, viewer: User) -> Payment:
    payment = get_payment_or_404(db, payment_id)
    if is_student(viewer) and payment.student_id != viewer.id:
        raise PermissionDenied("Insufficient permissions")
    return payment


def _date_filters(query, start_date: datetime | None, end_date: datetime | None):
    if start_date is not None:
        query = query.filter(Payment.created_at >= as_utc(start_date))
    if end_date is not None:
        query = query.filter(Payment.created_at <= as_utc(end_date))
    return query


def list_payments(
    db: Session,
    *,
    viewer: User,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    method: str | None = None,
    student_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[List[Payment], int]:
    query = db.query(Payment)
    if status:
        query = query.filter(Payment.status == status)
    if method:
        query = query.filter(Payment.method == method)
    if student_id is not None:
        query = query.filter(Payment.student_id == student_id)
    query = _date_filters(query, start_date, end_date)

    # 学生只能看到自己的支付记录
    if is_student(viewer):
        query = query.filter(Payment.student_id == viewer.id)

    query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
    return paginate(query, page=page, limit=limit)


def create_payment(db: Session, *, obj_in: PaymentCreate) -> Payment:
    student = require_user_with_role(db, obj_in.student_id, UserRole.STUDENT)

    if obj_in.package_id is not None:
        package = db.get(LessonPackage, obj_in.package_id)
        if package is None:
            raise NotFoundError("Lesson package not found")
        if package.student_id != student.id:
            raise ValidationError("Package does not belong to this student")

    payment = Payment(
        student_id=student.id,
        package_id=obj_in.package_id,
        amount=obj_in.amount,
        method=obj_in.method,
        status=obj_in.status,
        notes=obj_in.notes,
        paid_at=utcnow() if obj_in.status == PaymentStatus.PAID.value else None,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Recorded %s payment %s for student %s", payment.status, payment.id, student.id)
    return payment


def update_status(db: Session, *, payment: Payment, obj_in: PaymentStatusUpdate) -> Payment:
    if obj_in.status != payment.status:
        if obj_in.status not in PAYMENT_TRANSITIONS.get(payment.status, set()):
            raise ConflictError(
                f"Cannot change payment status from {payment.status} to {obj_in.status}"
            )
        logger.info("Payment %s: %s -> %s", payment.id, payment.status, obj_in.status)
        payment.status = obj_in.status
        if obj_in.status == PaymentStatus.PAID.value:
            payment.paid_at = utcnow()

    if "notes" in obj_in.model_fields_set:
        payment.notes = obj_in.notes
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def delete_payment(db: Session, *, payment: Payment) -> None:
    if payment.status not in _DELETABLE_STATUSES:
        raise ConflictError("Paid or refunded payments cannot be deleted")
    db.delete(payment)
    db.commit()


def payment_overview(
    db: Session,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict:
    base = _date_filters(db.query(Payment), start_date, end_date).subquery()

    by_status = {
        row.status: row
        for row in db.query(
            base.c.status,
            func.count(base.c.id).label("count"),
            func.coalesce(func.sum(base.c.amount), 0).label("amount"),
        ).group_by(base.c.status)
    }
    method_rows = (
        db.query(
            base.c.method,
            func.count(base.c.id).label("count"),
            func.coalesce(func.sum(base.c.amount), 0).label("amount"),
        )
        .filter(base.c.status == PaymentStatus.PAID.value)
        .group_by(base.c.method)
        .order_by(base.c.method)
        .all()
    )

    def count_of(status: PaymentStatus) -> int:
        row = by_status.get(status.value)
        return int(row.count) if row else 0

    paid = by_status.get(PaymentStatus.PAID.value)
    return {
        "total_payments": sum(int(row.count) for row in by_status.values()),
        "paid_payments": count_of(PaymentStatus.PAID),
        "pending_payments": count_of(PaymentStatus.PENDING),
        "failed_payments": count_of(PaymentStatus.FAILED),
        "refunded_payments": count_of(PaymentStatus.REFUNDED),
        "total_amount": sum(float(row.amount or 0) for row in by_status.values()),
        "paid_amount": float(paid.amount) if paid else 0.0,
        "method_stats": [
            {"method": row.method, "count": int(row.count), "amount": float(row.amount or 0)}
            for row in method_rows
        ],
    }


def monthly_payments(db: Session, *, year: int) -> dict:
    return {
        "year": year,
        "monthly_data": [
            {"month": item["month"], "count": item["payment_count"], "amount": item["total_revenue"]}
            for item in monthly_revenue(db, year=year)
        ],
    }
