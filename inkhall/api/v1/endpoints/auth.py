# inkhall/api/v1/endpoints/auth.py
import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from inkhall.core.exceptions import AuthenticationError
from inkhall.core.security import (
    authenticate_user,
    create_token_for_user,
    get_current_user,
)
from inkhall.db.session import get_db
from inkhall.models.enums import UserStatus
from inkhall.models.user import User
from inkhall.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    Token,
)
from inkhall.schemas.common import Message
from inkhall.schemas.user import UserPublic
from inkhall.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _login(db: Session, email: str, password: str) -> User:
    user = authenticate_user(db, email, password)
    if not user:
        logger.info("Failed login for %s", email)
        raise AuthenticationError("Incorrect email or password")
    if user.status != UserStatus.ACTIVE.value:
        raise AuthenticationError("Account is disabled")
    return user


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """
    自助注册，只能注册学生或老师。
    """
    user = user_service.register_user(db, obj_in=payload)
    return AuthResponse(access_token=create_token_for_user(user), user=user)


# 版本一：使用 JSON body 登录（前端更方便）
@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = _login(db, payload.email, payload.password)
    return AuthResponse(access_token=create_token_for_user(user), user=user)


# 版本二：兼容 OAuth2 的表单方式，swagger 的 "Authorize" 按钮用这个
@router.post("/token", response_model=Token)
def login_form(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    注意：username 字段请填写邮箱地址
    """
    user = _login(db, form_data.username, form_data.password)
    return Token(access_token=create_token_for_user(user))


@router.get("/me", response_model=UserPublic)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/change-password", response_model=Message)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_service.change_password(
        db,
        user=current_user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return Message(message="Password updated")
