# inkhall/services/package_service.py
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from inkhall.core.exceptions import ConflictError, NotFoundError, PermissionDenied
from inkhall.core.security import is_student
from inkhall.core.timeutils import as_utc, utcnow
from inkhall.db.transaction import atomic
from inkhall.models.course import Course
from inkhall.models.enums import PACKAGE_TRANSITIONS, PackageStatus, PaymentStatus, UserRole
from inkhall.models.lesson_package import LessonPackage
from inkhall.models.payment import Payment
from inkhall.models.user import User
from inkhall.schemas.lesson_package import (
    ConsumeRequest,
    PackageCreate,
    PackagePurchase,
    PackageUpdate,
)
from inkhall.services.pagination import paginate
from inkhall.services.user_service import require_user_with_role

logger = logging.getLogger(__name__)


def get_package(db: Session, package_id: int) -> Optional[LessonPackage]:
    return db.get(LessonPackage, package_id)


def get_package_or_404(db: Session, package_id: int) -> LessonPackage:
    package = get_package(db, package_id)
    if package is None:
        raise NotFoundError("Lesson package not found")
    return package


def get_package_for_viewer(db: Session, *, package_id: int, viewer: User) -> LessonPackage:
    package = get_package_or_404(db, package_id)
    if is_student(viewer) and package.student_id != viewer.id:
        raise PermissionDenied("Insufficient permissions")
    return package


def list_packages(
    db: Session,
    *,
    viewer: User,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    student_id: int | None = None,
) -> tuple[List[LessonPackage], int]:
    query = db.query(LessonPackage)
    if status:
        query = query.filter(LessonPackage.status == status)

    # 学生只能看到自己的课包
    if is_student(viewer):
        query = query.filter(LessonPackage.student_id == viewer.id)
    elif student_id is not None:
        query = query.filter(LessonPackage.student_id == student_id)

    query = query.order_by(LessonPackage.purchased_at.desc(), LessonPackage.id.desc())
    return paginate(query, page=page, limit=limit)


def _new_package(*, student_id: int, obj_in: PackageCreate | PackagePurchase) -> LessonPackage:
    now = utcnow()
    return LessonPackage(
        student_id=student_id,
        name=obj_in.name,
        description=obj_in.description,
        total_hours=obj_in.total_hours,
        used_hours=0,
        price=obj_in.price,
        valid_days=obj_in.valid_days,
        purchased_at=now,
        expires_at=now + timedelta(days=obj_in.valid_days),
        status=PackageStatus.ACTIVE.value,
    )


def grant_package(db: Session, *, obj_in: PackageCreate) -> LessonPackage:
    """Admin grants a package to a student without recording a payment."""
    student = require_user_with_role(db, obj_in.student_id, UserRole.STUDENT)

    package = _new_package(student_id=student.id, obj_in=obj_in)
    db.add(package)
    db.commit()
    db.refresh(package)
    logger.info("Granted package %s (%sh) to student %s", package.id, package.total_hours, student.id)
    return package


def purchase_package(
    db: Session,
    *,
    student: User,
    obj_in: PackagePurchase,
) -> tuple[LessonPackage, Payment]:
    """Package and its paid payment are written as one unit."""
    with atomic(db):
        package = _new_package(student_id=student.id, obj_in=obj_in)
        db.add(package)
        db.flush()

        payment = Payment(
            student_id=student.id,
            package_id=package.id,
            amount=obj_in.price,
            method=obj_in.payment_method,
            status=PaymentStatus.PAID.value,
            paid_at=utcnow(),
        )
        db.add(payment)

    db.refresh(package)
    db.refresh(payment)
    logger.info(
        "Student %s purchased package %s for %s via %s",
        student.id, package.id, payment.amount, payment.method,
    )
    return package, payment


def update_package(db: Session, *, package: LessonPackage, obj_in: PackageUpdate) -> LessonPackage:
    update_data = obj_in.model_dump(exclude_unset=True)
    for key in ("name", "status"):
        if key in update_data and update_data[key] is None:
            update_data.pop(key)

    new_status = update_data.get("status")
    if new_status is not None and new_status != package.status:
        if new_status not in PACKAGE_TRANSITIONS.get(package.status, set()):
            raise ConflictError(
                f"Cannot change package status from {package.status} to {new_status}"
            )
        logger.info("Package %s: %s -> %s", package.id, package.status, new_status)

    for field, value in update_data.items():
        setattr(package, field, value)
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


def delete_package(db: Session, *, package: LessonPackage) -> None:
    if package.used_hours > 0:
        raise ConflictError("Package has been used and cannot be deleted")

    package_id = package.id
    # 唯一会删掉已支付记录的路径：课包删除时连同它的付款一起删
    payment_ids = [payment.id for payment in package.payments]
    with atomic(db):
        for payment in list(package.payments):
            db.delete(payment)
        db.delete(package)
    logger.info("Deleted package %s with payments %s", package_id, payment_ids)


def consume_hours(db: Session, *, package_id: int, obj_in: ConsumeRequest) -> LessonPackage:
    """
    Deduct ``obj_in.hours`` from a package for a lesson of ``obj_in.course_id``.

    The package flips to completed once used hours reach the total; that
    transition is never undone automatically.
    """
    package = get_package_or_404(db, package_id)

    if package.status != PackageStatus.ACTIVE.value:
        raise ConflictError("Package is not active")
    if as_utc(package.expires_at) < utcnow():
        raise ConflictError("Package has expired")
    if package.remaining_hours < obj_in.hours:
        raise ConflictError(
            f"Insufficient hours: {package.remaining_hours} remaining, {obj_in.hours} requested"
        )
    if db.get(Course, obj_in.course_id) is None:
        raise NotFoundError("Course not found")

    hours = obj_in.hours
    with atomic(db):
        # 条件更新，保证 used_hours 不会超过 total_hours
        updated = (
            db.query(LessonPackage)
            .filter(
                LessonPackage.id == package_id,
                LessonPackage.status == PackageStatus.ACTIVE.value,
                LessonPackage.total_hours - LessonPackage.used_hours >= hours,
            )
            .update(
                {LessonPackage.used_hours: LessonPackage.used_hours + hours},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise ConflictError("Insufficient hours")
        db.query(LessonPackage).filter(
            LessonPackage.id == package_id,
            LessonPackage.used_hours >= LessonPackage.total_hours,
        ).update(
            {LessonPackage.status: PackageStatus.COMPLETED.value},
            synchronize_session=False,
        )

    db.refresh(package)
    logger.info(
        "Consumed %sh from package %s for course %s (used %s/%s, %s)",
        hours, package_id, obj_in.course_id,
        package.used_hours, package.total_hours, package.status,
    )
    return package


def package_overview(db: Session) -> dict:
    counts = dict(
        db.query(LessonPackage.status, func.count(LessonPackage.id))
        .group_by(LessonPackage.status)
        .all()
    )
    total_revenue = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.status == PaymentStatus.PAID.value)
        .scalar()
    )
    total_hours = db.query(func.coalesce(func.sum(LessonPackage.total_hours), 0)).scalar()

    return {
        "total_packages": sum(counts.values()),
        "active_packages": counts.get(PackageStatus.ACTIVE.value, 0),
        "expired_packages": counts.get(PackageStatus.EXPIRED.value, 0),
        "completed_packages": counts.get(PackageStatus.COMPLETED.value, 0),
        "cancelled_packages": counts.get(PackageStatus.CANCELLED.value, 0),
        "total_revenue": float(total_revenue or 0),
        "total_hours": int(total_hours or 0),
    }
