# app/domains/consulting/crud.py

"""
'consulting' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

from datetime import datetime, UTC
from typing import List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from . import models as consulting_models
from . import schemas as consulting_schemas


# =============================================================================
# 1. patients 테이블 CRUD
# =============================================================================
class CRUDPatient(CRUDBase[consulting_models.Patient, consulting_schemas.PatientCreate, consulting_schemas.PatientUpdate]):
    not_found_message = "Patient not found."
    conflict_message = "The patient was modified by another process."

    def __init__(self):
        super().__init__(model=consulting_models.Patient)

    async def get_by_dni_including_deleted(self, db: AsyncSession, *, dni: str) -> Optional[consulting_models.Patient]:
        # dni 는 DB 고유 제약이 있으므로 삭제된 환자까지 확인합니다.
        result = await db.execute(select(self.model).where(self.model.dni == dni))
        return result.scalars().first()

    async def exists_active_by_center(self, db: AsyncSession, *, center_id: int) -> bool:
        statement = select(self.model.id).where(self.model.center_id == center_id, self._active_clause())
        result = await db.execute(statement.limit(1))
        return result.first() is not None


# =============================================================================
# 2. medical_consultations 테이블 CRUD
# =============================================================================
class CRUDMedicalConsultation(CRUDBase[
    consulting_models.MedicalConsultation,
    consulting_schemas.MedicalConsultationCreate,
    consulting_schemas.MedicalConsultationUpdate,
]):
    not_found_message = "Medical consultation not found."
    conflict_message = "The medical consultation was modified by another process."

    def __init__(self):
        super().__init__(model=consulting_models.MedicalConsultation)

    async def _exists(self, db: AsyncSession, *conditions) -> bool:
        statement = select(self.model.id).where(self._active_clause(), *conditions)
        result = await db.execute(statement.limit(1))
        return result.first() is not None

    async def exists_active_by_center(self, db: AsyncSession, *, center_id: int) -> bool:
        return await self._exists(db, self.model.center_id == center_id)

    async def exists_active_by_patient(self, db: AsyncSession, *, patient_id: int) -> bool:
        return await self._exists(db, self.model.patient_id == patient_id)

    async def exists_future_by_doctor(
        self, db: AsyncSession, *, doctor_id: int, now: Optional[datetime] = None
    ) -> bool:
        now = now or datetime.now(UTC)
        return await self._exists(db, self.model.doctor_id == doctor_id, self.model.consultation_date >= now)

    async def get_multi_by(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100, **filters
    ) -> List[consulting_models.MedicalConsultation]:
        statement = select(self.model).where(self._active_clause())
        for field, value in filters.items():
            if value is not None:
                statement = statement.where(getattr(self.model, field) == value)
        statement = statement.order_by(self.model.consultation_date.desc()).offset(skip).limit(limit)
        result = await db.execute(statement)
        return result.scalars().all()


patient = CRUDPatient()
medical_consultation = CRUDMedicalConsultation()
