# app/domains/admin/models.py

"""
'admin' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

모든 테이블은 버전(version) 컬럼과 소프트 삭제 플래그(deleted)를 가집니다.
버전은 0 에서 시작하여 갱신이 성공할 때마다 정확히 1 씩 증가합니다.
이름/주소의 고유성은 '삭제되지 않은 행' 사이에서만 요구되므로 DB 제약이 아닌 서비스 계층에서 검사합니다.
"""

from typing import Optional
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. medical_centers 테이블 모델
# =============================================================================
class MedicalCenterBase(SQLModel):
    """
    medical_centers 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="의료센터 고유 ID")
    version: int = Field(default=0, nullable=False, description="낙관적 잠금 버전")
    name: str = Field(max_length=100, description="의료센터명 (삭제되지 않은 행 중 고유)")
    city: str = Field(max_length=100, description="도시")
    address: str = Field(max_length=200, description="주소 (삭제되지 않은 행 중 고유)")
    deleted: bool = Field(default=False, nullable=False, index=True, description="소프트 삭제 여부")

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


class MedicalCenter(MedicalCenterBase, table=True):
    __tablename__ = "medical_centers"


# =============================================================================
# 2. specialties 테이블 모델
# =============================================================================
class SpecialtyBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="진료과 고유 ID")
    version: int = Field(default=0, nullable=False, description="낙관적 잠금 버전")
    name: str = Field(max_length=100, description="진료과명 (삭제되지 않은 행 중 고유)")
    description: Optional[str] = Field(default=None, max_length=1000, description="설명")
    deleted: bool = Field(default=False, nullable=False, index=True, description="소프트 삭제 여부")

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


class Specialty(SpecialtyBase, table=True):
    __tablename__ = "specialties"


# =============================================================================
# 3. doctors 테이블 모델
# =============================================================================
class DoctorBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="의사 고유 ID")
    version: int = Field(default=0, nullable=False, description="낙관적 잠금 버전")
    # auth 서비스의 사용자 ID (원격 약한 참조, 외래 키 아님)
    user_id: int = Field(index=True, nullable=False, description="auth 서비스 사용자 ID")
    specialty_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("specialties.id", ondelete="RESTRICT"), nullable=True),
        description="진료과 ID (FK)"
    )
    deleted: bool = Field(default=False, nullable=False, index=True, description="소프트 삭제 여부")

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


class Doctor(DoctorBase, table=True):
    __tablename__ = "doctors"
