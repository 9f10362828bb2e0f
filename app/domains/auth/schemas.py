# app/domains/auth/schemas.py

"""
'auth' 도메인 (사용자, 인증, 비밀번호 재설정)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field
from pydantic import BaseModel, EmailStr, field_validator


class GenderType(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class RoleName(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"


# =============================================================================
# 1. 사용자 (User) 스키마
# =============================================================================
class UserBase(SQLModel):
    """사용자 정보의 기본 필드를 정의하는 스키마"""
    username: str = Field(..., min_length=1, max_length=50, description="로그인 사용자명 (DNI)")
    email: Optional[EmailStr] = Field(None, max_length=100)
    gender: GenderType
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    center_id: int = Field(..., gt=0)


class UserCreate(UserBase):
    """사용자 등록을 위한 스키마"""
    password: str = Field(..., min_length=6, max_length=100)
    roles: List[str] = Field(..., min_length=1, description="역할명 목록")

    @field_validator("roles")
    @classmethod
    def normalize_roles(cls, value: List[str]) -> List[str]:
        names = sorted({role.strip().upper() for role in value if role.strip()})
        if not names:
            raise ValueError("At least one role is required")
        return names


class UserUpdate(SQLModel):
    """사용자 정보 수정을 위한 스키마"""
    email: Optional[EmailStr] = None
    gender: Optional[GenderType] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    center_id: Optional[int] = Field(None, gt=0)


class PasswordUpdate(SQLModel):
    new_password: str = Field(..., min_length=6, max_length=100)


class UserRead(SQLModel):
    """
    사용자 정보 조회를 위한 기본 스키마.
    비밀번호 해시값 등 민감한 정보는 제외됩니다.
    """
    id: int
    username: str
    email: Optional[str] = None
    gender: str
    first_name: str
    last_name: str
    center_id: int
    enabled: bool
    roles: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("roles", mode="before")
    @classmethod
    def role_names(cls, value):
        return sorted(getattr(role, "name", role) for role in (value or []))


class UserReadWithCenter(UserRead):
    center_name: Optional[str] = None


# =============================================================================
# 2. 인증 (Token) 스키마
# =============================================================================
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =============================================================================
# 3. 비밀번호 재설정 스키마
# =============================================================================
class PasswordResetRequest(BaseModel):
    username_or_email: str = Field(..., min_length=1)


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)
