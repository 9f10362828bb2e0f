# app/domains/auth/models.py

"""
'auth' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
"""

from typing import Optional, List
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. user_roles 연결 테이블
# =============================================================================
class UserRoleLink(SQLModel, table=True):
    __tablename__ = "user_roles"

    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )
    role_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )


# =============================================================================
# 2. roles 테이블 모델
# =============================================================================
class Role(SQLModel, table=True):
    __tablename__ = "roles"

    id: Optional[int] = Field(default=None, primary_key=True, description="역할 고유 ID")
    name: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="역할명 (ADMIN, DOCTOR)")

    users: List["User"] = Relationship(back_populates="roles", link_model=UserRoleLink)


# =============================================================================
# 3. users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    username: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="로그인 사용자명 (DNI)")
    password_hash: str = Field(max_length=255, description="해싱된 비밀번호")
    email: Optional[str] = Field(default=None, max_length=100, sa_column_kwargs={"unique": True}, description="사용자 이메일")
    gender: str = Field(max_length=10, description="성별 (MALE, FEMALE)")
    first_name: str = Field(max_length=100, description="이름")
    last_name: str = Field(max_length=100, description="성")
    # admin 서비스의 의료센터 ID (원격 약한 참조)
    center_id: int = Field(index=True, description="소속 의료센터 ID")
    enabled: bool = Field(default=True, nullable=False, index=True, description="계정 활성 여부 (False = 삭제됨)")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class User(UserBase, table=True):
    __tablename__ = "users"

    roles: List[Role] = Relationship(
        back_populates="users",
        link_model=UserRoleLink,
        sa_relationship_kwargs={"lazy": "selectin"},
    )


# =============================================================================
# 4. verification_tokens 테이블 모델
# =============================================================================
class VerificationToken(SQLModel, table=True):
    """
    비밀번호 재설정 토큰. 만료되었거나 이미 사용된 토큰은 유효하지 않습니다.
    """
    __tablename__ = "verification_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        description="토큰 소유 사용자 ID"
    )
    token: str = Field(max_length=64, sa_column_kwargs={"unique": True}, description="UUID 토큰 문자열")
    used: bool = Field(default=False, nullable=False, description="사용 여부")
    expiration: datetime = Field(sa_column=Column(TIMESTAMP(timezone=True), nullable=False), description="만료 일시")
