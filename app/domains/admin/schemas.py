# app/domains/admin/schemas.py

"""
'admin' 도메인 (의료센터, 진료과, 의사)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.

갱신 스키마의 version 은 클라이언트가 마지막으로 읽은 버전입니다.
생략하면 서버가 방금 읽은 버전을 기대값으로 사용합니다.
"""

from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field
from pydantic import EmailStr


# =============================================================================
# 1. 의료센터 (MedicalCenter) 스키마
# =============================================================================
class MedicalCenterBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=200)


class MedicalCenterCreate(MedicalCenterBase):
    pass


class MedicalCenterUpdate(MedicalCenterBase):
    version: Optional[int] = Field(None, ge=0, description="마지막으로 읽은 버전")


class MedicalCenterRead(MedicalCenterBase):
    id: int
    version: int
    created_at: Optional[datetime] = Field(None, description="레코드 생성 일시")
    updated_at: Optional[datetime] = Field(None, description="레코드 마지막 업데이트 일시")


class MedicalCenterReadWithDeleted(MedicalCenterRead):
    deleted: bool


class MedicalCenterBatchRequest(SQLModel):
    ids: List[int] = Field(default_factory=list)
    include_deleted: bool = False


# =============================================================================
# 2. 진료과 (Specialty) 스키마
# =============================================================================
class SpecialtyBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class SpecialtyCreate(SpecialtyBase):
    pass


class SpecialtyUpdate(SpecialtyBase):
    version: Optional[int] = Field(None, ge=0, description="마지막으로 읽은 버전")


class SpecialtyRead(SpecialtyBase):
    id: int
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SpecialtyReadWithDeleted(SpecialtyRead):
    deleted: bool


# =============================================================================
# 3. 의사 (Doctor) 스키마
# =============================================================================
class GenderType(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class DoctorCreate(SQLModel):
    """기존 사용자를 의사로 연결하는 요청"""
    user_id: int = Field(..., gt=0)
    specialty_id: Optional[int] = Field(None, gt=0)


class DoctorUpdate(SQLModel):
    """specialty_id 를 null 로 명시하면 진료과 연결을 해제합니다."""
    user_id: Optional[int] = Field(None, gt=0)
    specialty_id: Optional[int] = Field(None, gt=0)
    version: Optional[int] = Field(None, ge=0, description="마지막으로 읽은 버전")


class DoctorRegister(SQLModel):
    """사용자 등록과 의사 생성을 한 번에 수행하는 요청 (사가)"""
    username: str = Field(..., min_length=1, max_length=50, description="로그인 사용자명 (DNI)")
    password: str = Field(..., min_length=6, max_length=100)
    email: Optional[EmailStr] = Field(None, max_length=100)
    gender: GenderType
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    center_id: int = Field(..., gt=0)
    specialty_id: Optional[int] = Field(None, gt=0, description="생략하면 진료과 없이 등록합니다.")


class DoctorRead(SQLModel):
    id: int
    version: int
    user_id: int
    specialty_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DoctorReadWithDeleted(DoctorRead):
    deleted: bool


class DoctorDetails(SQLModel):
    """의사 + auth 사용자 정보 + 진료과를 조립한 조회 결과"""
    id: int
    version: int
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    center_id: Optional[int] = None
    user_enabled: Optional[bool] = None
    specialty: Optional[SpecialtyRead] = None
