# app/domains/consulting/services.py

"""
'consulting' 도메인의 서비스 모듈입니다.

환자와 진료의 의료센터/의사는 admin 서비스에서 원격으로 확인합니다.
center_id 를 생략한 요청은 호출자의 X-Center-Id 를 사용합니다.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.clients import AdminClient, get_admin_client
from app.core import exceptions as exc
from app.core.context import RequestContext
from app.core.database import get_session

from . import crud as consulting_crud
from . import models as consulting_models
from . import schemas as consulting_schemas

logger = logging.getLogger(__name__)


def _resolve_center_id(center_id: Optional[int], ctx: RequestContext) -> int:
    resolved = center_id if center_id is not None else ctx.center_id
    if resolved is None:
        raise exc.ValidationError("Invalid data", errors={"center_id": "A center id is required."})
    return resolved


# =============================================================================
# 1. 환자 서비스
# =============================================================================
class PatientService:
    def __init__(self, db: AsyncSession, admin_client: AdminClient):
        self.db = db
        self.admin_client = admin_client

    async def get(self, id: int) -> consulting_models.Patient:
        patient = await consulting_crud.patient.get(self.db, id)
        if patient is None:
            raise exc.NotFoundError("Patient not found.")
        return patient

    async def _ensure_dni_free(self, dni: str, exclude_id: Optional[int] = None) -> None:
        existing = await consulting_crud.patient.get_by_dni_including_deleted(self.db, dni=dni)
        if existing is not None and existing.id != exclude_id:
            raise exc.ValidationError("Invalid data", errors={"dni": f"A patient with DNI {dni} already exists."})

    async def create(self, obj_in: consulting_schemas.PatientCreate, ctx: RequestContext) -> consulting_models.Patient:
        center_id = _resolve_center_id(obj_in.center_id, ctx)
        await self._ensure_dni_free(obj_in.dni)
        await self.admin_client.validate_center_id(center_id, ctx)

        patient = consulting_models.Patient(
            dni=obj_in.dni,
            first_name=obj_in.first_name,
            last_name=obj_in.last_name,
            birth_date=obj_in.birth_date,
            gender=obj_in.gender.value,
            center_id=center_id,
        )
        self.db.add(patient)
        await self.db.commit()
        await self.db.refresh(patient)
        return patient

    async def update(
        self, id: int, obj_in: consulting_schemas.PatientUpdate, ctx: RequestContext
    ) -> consulting_models.Patient:
        current = await self.get(id)
        values: Dict[str, Any] = obj_in.model_dump(exclude_unset=True, exclude={"version"})
        if values.get("dni") and values["dni"] != current.dni:
            await self._ensure_dni_free(values["dni"], exclude_id=id)
        if values.get("center_id") is not None and values["center_id"] != current.center_id:
            await self.admin_client.validate_center_id(values["center_id"], ctx)
        if values.get("gender") is not None:
            values["gender"] = consulting_schemas.GenderType(values["gender"]).value
        values = {key: value for key, value in values.items() if value is not None}
        return await consulting_crud.patient.update_optimistic(
            self.db, id=id, values=values, expected_version=obj_in.version
        )

    async def soft_delete(self, id: int) -> None:
        try:
            patient = await consulting_crud.patient.lock_by_id(self.db, id)
            if patient is None:
                raise exc.NotFoundError("Patient not found.")
            if await consulting_crud.medical_consultation.exists_active_by_patient(self.db, patient_id=id):
                raise exc.ConflictError("The patient has medical consultations and cannot be deleted.")
            await consulting_crud.patient.soft_delete_locked(self.db, db_obj=patient)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("patient %s soft-deleted", id)


# =============================================================================
# 2. 진료 서비스
# =============================================================================
class MedicalConsultationService:
    def __init__(self, db: AsyncSession, admin_client: AdminClient):
        self.db = db
        self.admin_client = admin_client

    async def get(self, id: int) -> consulting_models.MedicalConsultation:
        consultation = await consulting_crud.medical_consultation.get(self.db, id)
        if consultation is None:
            raise exc.NotFoundError("Medical consultation not found.")
        return consultation

    async def _ensure_doctor(self, doctor_id: int, ctx: RequestContext) -> None:
        if not await self.admin_client.exists_doctor_by_id(doctor_id, ctx):
            raise exc.ValidationError("Invalid data", errors={"doctor_id": f"Doctor {doctor_id} does not exist."})

    async def create(
        self, obj_in: consulting_schemas.MedicalConsultationCreate, ctx: RequestContext
    ) -> consulting_models.MedicalConsultation:
        center_id = _resolve_center_id(obj_in.center_id, ctx)
        patient = await consulting_crud.patient.get(self.db, obj_in.patient_id)
        if patient is None:
            raise exc.NotFoundError("Patient not found.")
        await self._ensure_doctor(obj_in.doctor_id, ctx)
        await self.admin_client.validate_center_id(center_id, ctx)

        consultation = consulting_models.MedicalConsultation(
            patient_id=patient.id,
            doctor_id=obj_in.doctor_id,
            center_id=center_id,
            consultation_date=obj_in.consultation_date,
            diagnosis=obj_in.diagnosis,
            treatment=obj_in.treatment,
            notes=obj_in.notes,
        )
        self.db.add(consultation)
        await self.db.commit()
        await self.db.refresh(consultation)
        return consultation

    async def update(
        self, id: int, obj_in: consulting_schemas.MedicalConsultationUpdate, ctx: RequestContext
    ) -> consulting_models.MedicalConsultation:
        current = await self.get(id)
        values: Dict[str, Any] = obj_in.model_dump(exclude_unset=True, exclude={"version"})
        if values.get("doctor_id") is not None and values["doctor_id"] != current.doctor_id:
            await self._ensure_doctor(values["doctor_id"], ctx)
        values = {key: value for key, value in values.items() if value is not None or key == "notes"}
        return await consulting_crud.medical_consultation.update_optimistic(
            self.db, id=id, values=values, expected_version=obj_in.version
        )

    async def soft_delete(self, id: int) -> None:
        try:
            consultation = await consulting_crud.medical_consultation.lock_by_id(self.db, id)
            if consultation is None:
                raise exc.NotFoundError("Medical consultation not found.")
            await consulting_crud.medical_consultation.soft_delete_locked(self.db, db_obj=consultation)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise


# =============================================================================
# 3. FastAPI 의존성
# =============================================================================
def get_patient_service(
    db: AsyncSession = Depends(get_session),
    admin_client: AdminClient = Depends(get_admin_client),
) -> PatientService:
    return PatientService(db, admin_client)


def get_consultation_service(
    db: AsyncSession = Depends(get_session),
    admin_client: AdminClient = Depends(get_admin_client),
) -> MedicalConsultationService:
    return MedicalConsultationService(db, admin_client)
