# inkhall/core/security.py
from datetime import timedelta
from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from inkhall.core.config import settings
from inkhall.core.exceptions import AuthenticationError, PermissionDenied
from inkhall.core.timeutils import utcnow
from inkhall.db.session import get_db
from inkhall.models.enums import UserRole, UserStatus
from inkhall.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# auto_error=False: 缺少 header 时由我们自己返回 401（默认会是 403）
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_token_for_user(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Invalid token")


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication token required")

    payload = decode_access_token(credentials.credentials)
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if user.status != UserStatus.ACTIVE.value:
        raise AuthenticationError("Account is disabled")
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory: the acting user's role must be in ``roles``."""
    allowed = {role.value for role in roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise PermissionDenied("Insufficient permissions")
        return current_user

    return dependency


get_current_admin = require_roles(UserRole.ADMIN)
get_current_teacher = require_roles(UserRole.TEACHER)
get_current_student = require_roles(UserRole.STUDENT)
get_current_staff = require_roles(UserRole.ADMIN, UserRole.TEACHER)


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN.value


def is_student(user: User) -> bool:
    return user.role == UserRole.STUDENT.value
