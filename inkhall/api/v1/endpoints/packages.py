# inkhall/api/v1/endpoints/packages.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inkhall.api.deps import PageParams, page_params
from inkhall.core.security import (
    get_current_admin,
    get_current_staff,
    get_current_student,
    get_current_user,
)
from inkhall.db.session import get_db
from inkhall.models.enums import PackageStatus
from inkhall.models.user import User
from inkhall.schemas.common import Message, Page
from inkhall.schemas.lesson_package import (
    ConsumeRequest,
    ConsumeResult,
    PackageCreate,
    PackageOverview,
    PackagePublic,
    PackagePurchase,
    PackageUpdate,
    PurchaseResult,
)
from inkhall.services import package_service

router = APIRouter()


@router.get("/", response_model=Page[PackagePublic])
def list_packages(
    package_status: PackageStatus | None = Query(None, alias="status"),
    student_id: int | None = None,
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    packages, total = package_service.list_packages(
        db,
        viewer=current_user,
        page=paging.page,
        limit=paging.limit,
        status=package_status.value if package_status else None,
        student_id=student_id,
    )
    return Page[PackagePublic].build(packages, total=total, page=paging.page, limit=paging.limit)


# 固定路径要写在 /{package_id} 前面
@router.get("/statistics/overview", response_model=PackageOverview)
def package_overview(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return package_service.package_overview(db)


@router.post("/", response_model=PackagePublic, status_code=status.HTTP_201_CREATED)
def grant_package(
    obj_in: PackageCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return package_service.grant_package(db, obj_in=obj_in)


@router.post("/purchase", response_model=PurchaseResult, status_code=status.HTTP_201_CREATED)
def purchase_package(
    obj_in: PackagePurchase,
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    """
    学生购买课包，同时生成一条已支付记录。
    """
    package, payment = package_service.purchase_package(
        db, student=current_student, obj_in=obj_in
    )
    return PurchaseResult(package=package, payment=payment)


@router.get("/{package_id}", response_model=PackagePublic)
def get_package(
    package_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return package_service.get_package_for_viewer(db, package_id=package_id, viewer=current_user)


@router.put("/{package_id}", response_model=PackagePublic)
def update_package(
    package_id: int,
    obj_in: PackageUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    package = package_service.get_package_or_404(db, package_id)
    return package_service.update_package(db, package=package, obj_in=obj_in)


@router.delete("/{package_id}", response_model=Message)
def delete_package(
    package_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    package = package_service.get_package_or_404(db, package_id)
    package_service.delete_package(db, package=package)
    return Message(message="Package deleted")


@router.post("/{package_id}/consume", response_model=ConsumeResult)
def consume_hours(
    package_id: int,
    obj_in: ConsumeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    package = package_service.consume_hours(db, package_id=package_id, obj_in=obj_in)
    return ConsumeResult(
        package_id=package.id,
        used_hours=package.used_hours,
        remaining_hours=package.remaining_hours,
        status=package.status,
    )
