# inkhall/schemas/auth.py
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from inkhall.schemas.user import UserPublic


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=100)  # 必填，可以重复
    phone: str | None = Field(default=None, max_length=30)
    role: Literal["student", "teacher"]  # 自助注册不能是 admin


class AuthResponse(Token):
    user: UserPublic


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)
