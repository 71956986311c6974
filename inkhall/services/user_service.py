# inkhall/services/user_service.py
import logging
import secrets
import string
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from inkhall.core.config import settings
from inkhall.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from inkhall.core.security import get_password_hash, is_admin, is_student, verify_password
from inkhall.models.enums import UserRole, UserStatus
from inkhall.models.user import User
from inkhall.schemas.auth import RegisterRequest
from inkhall.schemas.user import UserCreate, UserUpdate
from inkhall.services.pagination import paginate

logger = logging.getLogger(__name__)

_TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_or_404(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def require_user_with_role(db: Session, user_id: int, role: UserRole) -> User:
    """
    Load a user that must hold ``role``; used when an id in a payload
    names a student or teacher.
    """
    user = get_user(db, user_id)
    if user is None or user.role != role.value:
        raise ValidationError(f"Specified {role.value} does not exist or is not a {role.value}")
    return user


def _ensure_email_free(db: Session, email: str) -> None:
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered")


def register_user(db: Session, *, obj_in: RegisterRequest) -> User:
    _ensure_email_free(db, obj_in.email)

    user = User(
        email=obj_in.email,
        password_hash=get_password_hash(obj_in.password),
        name=obj_in.name,
        phone=obj_in.phone,
        role=obj_in.role,
        status=UserStatus.ACTIVE.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered %s user %s", user.role, user.id)
    return user


def generate_temp_password(length: int | None = None) -> str:
    length = length or settings.TEMP_PASSWORD_LENGTH
    return "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(length))


def create_user(db: Session, *, obj_in: UserCreate) -> tuple[User, str]:
    """
    Admin-initiated account creation. Returns the user and the generated
    temporary password, which is not stored anywhere in clear.
    """
    _ensure_email_free(db, obj_in.email)

    temp_password = generate_temp_password()
    user = User(
        email=obj_in.email,
        password_hash=get_password_hash(temp_password),
        name=obj_in.name,
        phone=obj_in.phone,
        role=obj_in.role,
        status=obj_in.status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin created %s user %s", user.role, user.id)
    return user, temp_password


def list_users(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
) -> tuple[List[User], int]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.phone.ilike(pattern),
            )
        )
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, page=page, limit=limit)


def get_user_for_viewer(db: Session, *, user_id: int, viewer: User) -> User:
    # 学生只能看自己；老师和管理员可以看所有人
    if is_student(viewer) and viewer.id != user_id:
        raise PermissionDenied("Insufficient permissions")
    return get_user_or_404(db, user_id)


def update_user(db: Session, *, user_id: int, actor: User, obj_in: UserUpdate) -> User:
    if actor.id != user_id and not is_admin(actor):
        raise PermissionDenied("Insufficient permissions")

    user = get_user_or_404(db, user_id)
    update_data = obj_in.model_dump(exclude_unset=True)

    # 只有管理员可以修改用户状态
    if "status" in update_data and not is_admin(actor):
        update_data.pop("status")
    if update_data.get("status") is None:
        update_data.pop("status", None)
    if "name" in update_data and update_data["name"] is None:
        update_data.pop("name")

    for field, value in update_data.items():
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def soft_delete_user(db: Session, *, user_id: int) -> User:
    """Users are never removed; the account is suspended instead."""
    user = get_user_or_404(db, user_id)
    user.status = UserStatus.SUSPENDED.value
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Suspended user %s", user.id)
    return user


def change_password(
    db: Session,
    *,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    db.add(user)
    db.commit()
    logger.info("User %s changed password", user.id)
