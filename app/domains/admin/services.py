# app/domains/admin/services.py

"""
'admin' 도메인의 쓰기 서비스 모듈입니다.

각 서비스는 DB 세션과 원격 서비스 클라이언트를 주입받아, 원격 검증과 로컬 저장을
정해진 순서로 수행합니다. 요청 신원(RequestContext)은 모든 메서드에 명시적으로 전달되며
원격 호출 헤더로 그대로 전달됩니다.

- MedicalCenterWriteService: 고유성 검사, 낙관적/비관적 갱신, 의존 데이터 확인 후 소프트 삭제.
- SpecialtyWriteService: 고유성 검사, 갱신, 연결된 의사가 있으면 삭제 거부.
- DoctorWriteService: 사용자 등록 + 의사 생성 사가(실패 시 사용자 삭제로 보상), 갱신, 삭제.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.clients import AuthUserClient, ConsultingClient, get_auth_client, get_consulting_client
from app.clients.schemas import RemoteUser, RemoteUserCreate
from app.core import exceptions as exc
from app.core.context import RequestContext
from app.core.database import get_session
from app.core.saga import Saga, SagaState
from app.core.validation import check_unique

from . import crud as admin_crud
from . import models as admin_models
from . import schemas as admin_schemas

logger = logging.getLogger(__name__)

EXTERNAL_SERVICES_ERROR = "Error communicating with external services."

DependencyCheck = Callable[[int, RequestContext], Awaitable[bool]]


# =============================================================================
# 1. 의료센터 쓰기 서비스
# =============================================================================
class MedicalCenterWriteService:
    def __init__(self, db: AsyncSession, auth_client: AuthUserClient, consulting_client: ConsultingClient):
        self.db = db
        self.auth_client = auth_client
        self.consulting_client = consulting_client

    async def _ensure_unique(self, obj_in: admin_schemas.MedicalCenterBase, exclude_id: Optional[int] = None) -> None:
        model = admin_models.MedicalCenter
        errors: Dict[str, str] = {}
        if not await check_unique(self.db, model, "name", obj_in.name, exclude_id):
            errors["name"] = "A medical center with this name already exists."
        if not await check_unique(self.db, model, "address", obj_in.address, exclude_id):
            errors["address"] = "A medical center with this address already exists."
        if errors:
            raise exc.ValidationError("Invalid data", errors=errors)

    async def create(self, obj_in: admin_schemas.MedicalCenterCreate) -> admin_models.MedicalCenter:
        await self._ensure_unique(obj_in)
        return await admin_crud.medical_center.create(self.db, obj_in=obj_in)

    async def update(self, id: int, obj_in: admin_schemas.MedicalCenterUpdate) -> admin_models.MedicalCenter:
        """낙관적 갱신: 버전이 맞지 않으면 ConflictError."""
        await self._ensure_unique(obj_in, exclude_id=id)
        return await admin_crud.medical_center.update_optimistic(
            self.db, id=id, values=obj_in.model_dump(exclude={"version"}), expected_version=obj_in.version
        )

    async def update_with_lock(self, id: int, obj_in: admin_schemas.MedicalCenterUpdate) -> admin_models.MedicalCenter:
        """비관적 갱신: 행을 잠근 뒤 검증하고 갱신합니다."""
        try:
            center = await admin_crud.medical_center.lock_by_id(self.db, id)
            if center is None:
                raise exc.NotFoundError("Medical center not found.")
            if obj_in.version is not None and obj_in.version != center.version:
                raise exc.ConflictError(admin_crud.medical_center.conflict_message)
            await self._ensure_unique(obj_in, exclude_id=id)
            await admin_crud.medical_center.apply_locked_update(
                self.db, db_obj=center, values=obj_in.model_dump(exclude={"version"})
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(center)
        return center

    async def _dependency_exists(self, check: DependencyCheck, center_id: int, ctx: RequestContext) -> bool:
        try:
            return await check(center_id, ctx)
        except Exception as e:
            logger.error("center %s dependency check failed: %s", center_id, e)
            raise exc.BadGatewayError(EXTERNAL_SERVICES_ERROR) from e

    async def soft_delete(self, id: int, ctx: RequestContext) -> None:
        """
        의료센터를 잠근 뒤 사용자 -> 환자 -> 진료 순서로 의존 데이터를 확인하고,
        처음 발견된 의존 데이터에 해당하는 메시지로 삭제를 거부합니다.
        """
        checks = (
            (self.auth_client.has_active_users_in_center,
             "Cannot delete the medical center: it has active users."),
            (self.consulting_client.has_active_patients_in_center,
             "Cannot delete the medical center: it has active patients."),
            (self.consulting_client.has_active_appointments_in_center,
             "Cannot delete the medical center: it has active appointments."),
        )
        try:
            center = await admin_crud.medical_center.lock_by_id(self.db, id)
            if center is None:
                raise exc.NotFoundError("Medical center not found.")
            for check, message in checks:
                if await self._dependency_exists(check, id, ctx):
                    raise exc.ConflictError(message)
            await admin_crud.medical_center.soft_delete_locked(self.db, db_obj=center)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("medical center %s soft-deleted", id)


# =============================================================================
# 2. 진료과 쓰기 서비스
# =============================================================================
class SpecialtyWriteService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_unique(self, obj_in: admin_schemas.SpecialtyBase, exclude_id: Optional[int] = None) -> None:
        if not await check_unique(self.db, admin_models.Specialty, "name", obj_in.name, exclude_id):
            raise exc.ValidationError(
                "Invalid data", errors={"name": "A specialty with this name already exists."}
            )

    async def create(self, obj_in: admin_schemas.SpecialtyCreate) -> admin_models.Specialty:
        await self._ensure_unique(obj_in)
        return await admin_crud.specialty.create(self.db, obj_in=obj_in)

    async def update(self, id: int, obj_in: admin_schemas.SpecialtyUpdate) -> admin_models.Specialty:
        await self._ensure_unique(obj_in, exclude_id=id)
        return await admin_crud.specialty.update_optimistic(
            self.db, id=id, values=obj_in.model_dump(exclude={"version"}), expected_version=obj_in.version
        )

    async def update_with_lock(self, id: int, obj_in: admin_schemas.SpecialtyUpdate) -> admin_models.Specialty:
        try:
            specialty = await admin_crud.specialty.lock_by_id(self.db, id)
            if specialty is None:
                raise exc.NotFoundError("Specialty not found.")
            if obj_in.version is not None and obj_in.version != specialty.version:
                raise exc.ConflictError(admin_crud.specialty.conflict_message)
            await self._ensure_unique(obj_in, exclude_id=id)
            await admin_crud.specialty.apply_locked_update(
                self.db, db_obj=specialty, values=obj_in.model_dump(exclude={"version"})
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(specialty)
        return specialty

    async def soft_delete(self, id: int) -> None:
        try:
            specialty = await admin_crud.specialty.lock_by_id(self.db, id)
            if specialty is None:
                raise exc.NotFoundError("Specialty not found.")
            active_doctors = await admin_crud.doctor.count_active_by_specialty(self.db, specialty_id=id)
            if active_doctors > 0:
                raise exc.ConflictError(
                    f"Cannot delete the specialty: {active_doctors} active doctors are linked to it."
                )
            await admin_crud.specialty.soft_delete_locked(self.db, db_obj=specialty)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise


# =============================================================================
# 3. 의사 쓰기 서비스 (사가)
# =============================================================================
class DoctorWriteService:
    def __init__(self, db: AsyncSession, auth_client: AuthUserClient, consulting_client: ConsultingClient):
        self.db = db
        self.auth_client = auth_client
        self.consulting_client = consulting_client

    async def _resolve_specialty(self, specialty_id: int) -> admin_models.Specialty:
        specialty = await admin_crud.specialty.get(self.db, specialty_id)
        if specialty is None:
            raise exc.NotFoundError("The specified specialty does not exist.")
        return specialty

    async def _validate_user(self, user_id: int, ctx: RequestContext, exclude_id: Optional[int] = None) -> None:
        """
        user_id 가 다른 활성 의사에 연결되어 있지 않고, auth 서비스에 존재하는지 확인합니다.
        """
        if await admin_crud.doctor.exists_active_by_user_id(self.db, user_id=user_id, exclude_id=exclude_id):
            message = "An active doctor already exists for the given user."
            raise exc.ValidationError(message, errors={"user_id": message})
        if not await self.auth_client.exists_user_by_id(user_id, ctx):
            message = "The user does not exist in the authentication service."
            raise exc.ValidationError(message, errors={"user_id": message})

    async def create(self, obj_in: admin_schemas.DoctorCreate, ctx: RequestContext) -> admin_models.Doctor:
        try:
            await self._validate_user(obj_in.user_id, ctx)
            specialty_id = None
            if obj_in.specialty_id is not None:
                specialty_id = (await self._resolve_specialty(obj_in.specialty_id)).id
            doctor = admin_models.Doctor(user_id=obj_in.user_id, specialty_id=specialty_id)
            self.db.add(doctor)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(doctor)
        return doctor

    async def _compensate_delete_user(self, user_id: int, ctx: RequestContext) -> None:
        """
        보상 단계: 등록된 사용자를 물리 삭제합니다.
        이미 없으면(404) 해결된 것으로 보고, 그 밖의 실패는 기록만 하고 삼킵니다.
        """
        try:
            deleted = await self.auth_client.delete_user(user_id, ctx, hard=True)
        except Exception:
            logger.error("compensation failed: user %s could not be deleted", user_id, exc_info=True)
            return
        if deleted:
            logger.info("compensation: user %s deleted", user_id)
        else:
            logger.info("compensation: user %s was already absent", user_id)

    async def _roll_back_registration(self, saga: Saga, user_id: int, ctx: RequestContext, error: str) -> None:
        saga.advance(SagaState.LOCAL_STEP_FAILED, user_id=user_id, error=error)
        await self._compensate_delete_user(user_id, ctx)
        saga.advance(SagaState.COMPENSATION_ATTEMPTED, user_id=user_id)
        saga.advance(SagaState.FAILED, user_id=user_id)

    async def register_doctor(self, obj_in: admin_schemas.DoctorRegister, ctx: RequestContext) -> admin_models.Doctor:
        """
        1) auth 서비스에 DOCTOR 역할 사용자 등록 (실패 시 보상 없이 그대로 실패)
        2) 로컬 의사 생성 (실패 시 1 에서 만든 사용자를 삭제하여 보상)
        호출자는 성공한 의사 또는 원래 오류 하나만 받습니다.
        요청이 2 단계에서 취소되어도 보상은 asyncio.shield 로 끝까지 수행한 뒤 취소를 전파합니다.
        """
        saga = Saga("register_doctor", trace_id=ctx.trace_id)
        user_in = RemoteUserCreate(
            username=obj_in.username,
            password=obj_in.password,
            email=obj_in.email,
            gender=obj_in.gender.value,
            first_name=obj_in.first_name,
            last_name=obj_in.last_name,
            center_id=obj_in.center_id,
            roles=["DOCTOR"],
        )
        try:
            user = await self.auth_client.register(user_in, ctx)
        except Exception:
            saga.advance(SagaState.FAILED, step="register_user")
            raise
        saga.advance(SagaState.REMOTE_STEP_DONE, user_id=user.id)

        try:
            doctor = await self.create(
                admin_schemas.DoctorCreate(user_id=user.id, specialty_id=obj_in.specialty_id), ctx
            )
        except asyncio.CancelledError:
            await asyncio.shield(self._roll_back_registration(saga, user.id, ctx, "cancelled"))
            raise
        except Exception as e:
            await self._roll_back_registration(saga, user.id, ctx, str(e))
            if isinstance(e, exc.ServiceError):
                raise
            raise exc.InternalServerError("Unexpected error while registering the doctor.") from e

        saga.advance(SagaState.LOCAL_STEP_DONE, doctor_id=doctor.id)
        saga.advance(SagaState.SUCCESS, doctor_id=doctor.id)
        return doctor

    async def _changes(
        self, current: admin_models.Doctor, obj_in: admin_schemas.DoctorUpdate, ctx: RequestContext
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        if obj_in.user_id is not None and obj_in.user_id != current.user_id:
            await self._validate_user(obj_in.user_id, ctx, exclude_id=current.id)
            values["user_id"] = obj_in.user_id
        if "specialty_id" in obj_in.model_fields_set:
            # 명시적 null 은 진료과 연결 해제입니다.
            if obj_in.specialty_id is None:
                values["specialty_id"] = None
            else:
                values["specialty_id"] = (await self._resolve_specialty(obj_in.specialty_id)).id
        return values

    async def update(self, id: int, obj_in: admin_schemas.DoctorUpdate, ctx: RequestContext) -> admin_models.Doctor:
        """낙관적 갱신: 원격 검증 후 버전 비교 교체."""
        current = await admin_crud.doctor.get(self.db, id)
        if current is None:
            raise exc.NotFoundError("Doctor not found.")
        values = await self._changes(current, obj_in, ctx)
        return await admin_crud.doctor.update_optimistic(
            self.db, id=id, values=values, expected_version=obj_in.version
        )

    async def update_with_lock(self, id: int, obj_in: admin_schemas.DoctorUpdate, ctx: RequestContext) -> admin_models.Doctor:
        """비관적 갱신: 행을 잠근 상태에서 원격 검증을 수행합니다."""
        try:
            doctor = await admin_crud.doctor.lock_by_id(self.db, id)
            if doctor is None:
                raise exc.NotFoundError("Doctor not found.")
            if obj_in.version is not None and obj_in.version != doctor.version:
                raise exc.ConflictError(admin_crud.doctor.conflict_message)
            values = await self._changes(doctor, obj_in, ctx)
            await admin_crud.doctor.apply_locked_update(self.db, db_obj=doctor, values=values)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(doctor)
        return doctor

    async def soft_delete(self, id: int, ctx: RequestContext) -> None:
        """
        의사를 잠근 뒤 향후 진료가 없으면 auth 사용자를 비활성화하고 로컬에서 소프트 삭제합니다.
        원격 사용자 삭제가 실패하면 로컬 삭제는 수행하지 않습니다 (보상 없음).
        """
        try:
            doctor = await admin_crud.doctor.lock_by_id(self.db, id)
            if doctor is None:
                raise exc.NotFoundError("Doctor not found.")
            if await self.consulting_client.has_future_appointments(id, ctx):
                raise exc.ConflictError("The doctor has future appointments and cannot be deleted.")
            await self.auth_client.delete_user(doctor.user_id, ctx, hard=False)
            await admin_crud.doctor.soft_delete_locked(self.db, db_obj=doctor)
            await self.db.commit()
        except exc.ServiceError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception("doctor %s soft delete failed", id)
            raise exc.BadGatewayError(EXTERNAL_SERVICES_ERROR) from e
        logger.info("doctor %s soft-deleted", id)

    async def get_details(self, id: int, ctx: RequestContext) -> admin_schemas.DoctorDetails:
        """의사 정보에 auth 사용자 정보와 진료과를 붙여 반환합니다."""
        doctor = await admin_crud.doctor.get(self.db, id)
        if doctor is None:
            raise exc.NotFoundError("Doctor not found.")

        user: Optional[RemoteUser] = None
        try:
            user = await self.auth_client.get_user_by_id(doctor.user_id, ctx, include_disabled=True)
        except exc.NotFoundError:
            logger.warning("doctor %s references missing user %s", id, doctor.user_id)

        specialty = None
        if doctor.specialty_id is not None:
            specialty = await admin_crud.specialty.get_including_deleted(self.db, doctor.specialty_id)

        return admin_schemas.DoctorDetails(
            id=doctor.id,
            version=doctor.version,
            user_id=doctor.user_id,
            username=user.username if user else None,
            first_name=user.first_name if user else None,
            last_name=user.last_name if user else None,
            gender=user.gender if user else None,
            center_id=user.center_id if user else None,
            user_enabled=user.enabled if user else None,
            specialty=admin_schemas.SpecialtyRead.model_validate(specialty) if specialty else None,
        )


# =============================================================================
# 4. FastAPI 의존성
# =============================================================================
def get_medical_center_service(
    db: AsyncSession = Depends(get_session),
    auth_client: AuthUserClient = Depends(get_auth_client),
    consulting_client: ConsultingClient = Depends(get_consulting_client),
) -> MedicalCenterWriteService:
    return MedicalCenterWriteService(db, auth_client, consulting_client)


def get_specialty_service(db: AsyncSession = Depends(get_session)) -> SpecialtyWriteService:
    return SpecialtyWriteService(db)


def get_doctor_service(
    db: AsyncSession = Depends(get_session),
    auth_client: AuthUserClient = Depends(get_auth_client),
    consulting_client: ConsultingClient = Depends(get_consulting_client),
) -> DoctorWriteService:
    return DoctorWriteService(db, auth_client, consulting_client)
