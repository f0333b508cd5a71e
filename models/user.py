# models/user.py
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserRole(str, Enum):
    freelancer = "freelancer"
    employer = "employer"
    admin = "admin"


class UserStatus(str, Enum):
    active = "active"
    blocked = "blocked"


# 註冊時可選的角色 (admin 只能由後台建立)
REGISTRABLE_ROLES = (UserRole.freelancer, UserRole.employer)

# bcrypt 只吃前 72 bytes，超過會直接報錯 (算的是 UTF-8 位元組，不是字元數)
MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    confirm_password: str
    full_name: str = Field(..., min_length=1)
    role: UserRole = UserRole.freelancer
    bio: str | None = None
    location: str | None = None
    skills: list[str] = Field(default_factory=list)

    # 接案人 (freelancer) 專屬欄位
    education: str | None = None
    hourly_rate: float | None = Field(None, ge=0)
    years_experience: int | None = Field(None, ge=0)
    categories: list[str] | None = None

    # 雇主 (employer) 專屬欄位
    company: str | None = None
    industry: str | None = None
    website: str | None = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if password_too_long(v):
            raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
        return v

    @field_validator("role")
    @classmethod
    def no_admin_signup(cls, v: UserRole) -> UserRole:
        if v not in REGISTRABLE_ROLES:
            raise ValueError("Invalid role")
        return v


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    # 全部設為可選，讓路由自己回傳 400 與清楚的訊息
    current_password: str | None = None
    new_password: str | None = None
    confirm_password: str | None = None


class BlockUserRequest(BaseModel):
    reason: str | None = None
