# app/domains/consulting/models.py

"""
'consulting' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
의사(doctor_id)와 의료센터(center_id)는 admin 서비스의 행을 가리키는 약한 참조입니다.
"""

from typing import Optional
from datetime import date, datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. patients 테이블 모델
# =============================================================================
class PatientBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="환자 고유 ID")
    version: int = Field(default=0, nullable=False, description="낙관적 잠금 버전")
    dni: str = Field(max_length=10, sa_column_kwargs={"unique": True}, description="주민번호 (cédula)")
    first_name: str = Field(max_length=100, description="이름")
    last_name: str = Field(max_length=100, description="성")
    birth_date: date = Field(description="생년월일")
    gender: str = Field(max_length=10, description="성별 (MALE, FEMALE)")
    center_id: int = Field(index=True, description="소속 의료센터 ID")
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


class Patient(PatientBase, table=True):
    __tablename__ = "patients"


# =============================================================================
# 2. medical_consultations 테이블 모델
# =============================================================================
class MedicalConsultationBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="진료 고유 ID")
    version: int = Field(default=0, nullable=False, description="낙관적 잠금 버전")
    patient_id: int = Field(
        sa_column=Column(Integer, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False, index=True),
        description="환자 ID (FK)"
    )
    doctor_id: int = Field(index=True, description="admin 서비스 의사 ID")
    center_id: int = Field(index=True, description="admin 서비스 의료센터 ID")
    consultation_date: datetime = Field(sa_column=Column(TIMESTAMP(timezone=True), nullable=False, index=True), description="진료 일시")
    diagnosis: str = Field(sa_column=Column(Text, nullable=False), description="진단")
    treatment: str = Field(sa_column=Column(Text, nullable=False), description="치료")
    notes: Optional[str] = Field(default=None, sa_column=Column(Text), description="비고")
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


class MedicalConsultation(MedicalConsultationBase, table=True):
    __tablename__ = "medical_consultations"
