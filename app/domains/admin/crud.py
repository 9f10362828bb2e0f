# app/domains/admin/crud.py

"""
'admin' 도메인의 CRUD 작업을 담당하는 모듈입니다.
비즈니스 검증(고유성, 원격 확인)은 services.py 에서 수행하고, 여기서는 저장소 접근만 다룹니다.
"""

from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from . import models as admin_models
from . import schemas as admin_schemas


# =============================================================================
# 1. medical_centers 테이블 CRUD
# =============================================================================
class CRUDMedicalCenter(CRUDBase[admin_models.MedicalCenter, admin_schemas.MedicalCenterCreate, admin_schemas.MedicalCenterUpdate]):
    not_found_message = "Medical center not found."
    conflict_message = "The medical center was modified by another process."

    def __init__(self):
        super().__init__(model=admin_models.MedicalCenter)


# =============================================================================
# 2. specialties 테이블 CRUD
# =============================================================================
class CRUDSpecialty(CRUDBase[admin_models.Specialty, admin_schemas.SpecialtyCreate, admin_schemas.SpecialtyUpdate]):
    not_found_message = "Specialty not found."
    conflict_message = "The specialty was modified by another process."

    def __init__(self):
        super().__init__(model=admin_models.Specialty)


# =============================================================================
# 3. doctors 테이블 CRUD
# =============================================================================
class CRUDDoctor(CRUDBase[admin_models.Doctor, admin_schemas.DoctorCreate, admin_schemas.DoctorUpdate]):
    not_found_message = "Doctor not found."
    conflict_message = "The doctor was modified by another process."

    def __init__(self):
        super().__init__(model=admin_models.Doctor)

    async def exists_active_by_user_id(
        self, db: AsyncSession, *, user_id: int, exclude_id: Optional[int] = None
    ) -> bool:
        """
        같은 user_id 를 가진 활성 의사가 있는지 확인합니다 (갱신 시 자기 자신 제외).
        """
        statement = select(self.model.id).where(self.model.user_id == user_id, self._active_clause())
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        result = await db.execute(statement.limit(1))
        return result.first() is not None

    async def count_active_by_specialty(self, db: AsyncSession, *, specialty_id: int) -> int:
        return await self.count(db, specialty_id=specialty_id)


medical_center = CRUDMedicalCenter()
specialty = CRUDSpecialty()
doctor = CRUDDoctor()
