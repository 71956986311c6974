# inkhall/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inkhall.api.deps import PageParams, page_params
from inkhall.core.security import get_current_admin, get_current_staff, get_current_user
from inkhall.db.session import get_db
from inkhall.models.enums import UserRole, UserStatus
from inkhall.models.user import User
from inkhall.schemas.common import Page
from inkhall.schemas.user import UserCreate, UserCreated, UserPublic, UserUpdate
from inkhall.services import user_service

router = APIRouter()


@router.get("/", response_model=Page[UserPublic])
def list_users(
    role: UserRole | None = None,
    user_status: UserStatus | None = Query(None, alias="status"),
    search: str | None = None,
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    """
    管理员和老师查看用户列表。
    """
    users, total = user_service.list_users(
        db,
        page=paging.page,
        limit=paging.limit,
        role=role.value if role else None,
        status=user_status.value if user_status else None,
        search=search,
    )
    return Page[UserPublic].build(users, total=total, page=paging.page, limit=paging.limit)


@router.post("/", response_model=UserCreated, status_code=status.HTTP_201_CREATED)
def create_user(
    obj_in: UserCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    user, temp_password = user_service.create_user(db, obj_in=obj_in)
    return UserCreated(user=user, temp_password=temp_password)


@router.get("/{user_id}", response_model=UserPublic)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return user_service.get_user_for_viewer(db, user_id=user_id, viewer=current_user)


@router.put("/{user_id}", response_model=UserPublic)
def update_user(
    user_id: int,
    obj_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    本人或管理员修改资料；状态只有管理员能改。
    """
    return user_service.update_user(db, user_id=user_id, actor=current_user, obj_in=obj_in)


@router.delete("/{user_id}", response_model=UserPublic)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    # 软删除，返回被停用的用户
    return user_service.soft_delete_user(db, user_id=user_id)
