# app/domains/consulting/schemas.py

"""
'consulting' 도메인 (환자, 진료)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import date, datetime, UTC
from enum import Enum
from sqlmodel import SQLModel, Field
from pydantic import field_validator

from app.core.validation import is_valid_ecuadorian_dni


class GenderType(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


def _check_dni(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_valid_ecuadorian_dni(value):
        raise ValueError("Invalid Ecuadorian DNI")
    return value


def _check_birth_date(value: Optional[date]) -> Optional[date]:
    if value is not None and value >= date.today():
        raise ValueError("Birth date must be in the past")
    return value


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # 시간대가 없는 값은 UTC 로 간주합니다.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# =============================================================================
# 1. 환자 (Patient) 스키마
# =============================================================================
class PatientCreate(SQLModel):
    dni: str = Field(..., min_length=10, max_length=10)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    gender: GenderType
    # 생략하면 호출자의 X-Center-Id 를 사용합니다.
    center_id: Optional[int] = Field(None, gt=0)

    @field_validator("dni")
    @classmethod
    def validate_dni(cls, value):
        return _check_dni(value)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, value):
        return _check_birth_date(value)


class PatientUpdate(SQLModel):
    dni: Optional[str] = Field(None, min_length=10, max_length=10)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    birth_date: Optional[date] = None
    gender: Optional[GenderType] = None
    center_id: Optional[int] = Field(None, gt=0)
    version: Optional[int] = Field(None, ge=0, description="마지막으로 읽은 버전")

    @field_validator("dni")
    @classmethod
    def validate_dni(cls, value):
        return _check_dni(value)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, value):
        return _check_birth_date(value)


class PatientRead(SQLModel):
    id: int
    version: int
    dni: str
    first_name: str
    last_name: str
    birth_date: date
    gender: str
    center_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 2. 진료 (MedicalConsultation) 스키마
# =============================================================================
class MedicalConsultationCreate(SQLModel):
    patient_id: int = Field(..., gt=0)
    doctor_id: int = Field(..., gt=0)
    # 생략하면 호출자의 X-Center-Id 를 사용합니다.
    center_id: Optional[int] = Field(None, gt=0)
    consultation_date: datetime
    diagnosis: str = Field(..., min_length=1, max_length=1000)
    treatment: str = Field(..., min_length=1, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("consultation_date")
    @classmethod
    def normalize_date(cls, value):
        return _to_utc(value)


class MedicalConsultationUpdate(SQLModel):
    doctor_id: Optional[int] = Field(None, gt=0)
    consultation_date: Optional[datetime] = None
    diagnosis: Optional[str] = Field(None, min_length=1, max_length=1000)
    treatment: Optional[str] = Field(None, min_length=1, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    version: Optional[int] = Field(None, ge=0, description="마지막으로 읽은 버전")

    @field_validator("consultation_date")
    @classmethod
    def normalize_date(cls, value):
        return _to_utc(value)


class MedicalConsultationRead(SQLModel):
    id: int
    version: int
    patient_id: int
    doctor_id: int
    center_id: int
    consultation_date: datetime
    diagnosis: str
    treatment: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
