# app/domains/admin/routers.py

"""
'admin' 도메인 (의료센터, 진료과, 의사)과 관련된 API 엔드포인트를 정의하는 모듈입니다.

역할 검사는 각 라우트 시그니처의 의존성으로 선언되어 핸들러 실행 전에 수행됩니다.
갱신 라우트는 ?lock=optimistic|pessimistic 으로 동시성 제어 모드를 선택할 수 있습니다.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core import exceptions as exc
from app.core.concurrency import LockMode

from . import crud as admin_crud
from . import schemas as admin_schemas
from . import services as admin_services


router = APIRouter(
    tags=["Admin (의료센터, 진료과, 의사 관리)"],
    responses={404: {"description": "Not found"}},
)

require_admin = deps.require_any("ADMIN")
require_staff = deps.require_any("ADMIN", "DOCTOR")


# =============================================================================
# 1. 의료센터 (MedicalCenter) 엔드포인트
# =============================================================================
@router.get("/centers", response_model=List[admin_schemas.MedicalCenterRead], summary="활성 의료센터 목록")
async def read_centers(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.medical_center.get_multi(db, skip=skip, limit=limit)


@router.get("/centers/all", response_model=List[admin_schemas.MedicalCenterReadWithDeleted], summary="삭제된 항목을 포함한 의료센터 목록")
async def read_centers_including_deleted(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.medical_center.get_multi_including_deleted(db, skip=skip, limit=limit)


@router.get("/centers/validate/{center_id}", summary="의료센터 존재 확인 (200/404)")
async def validate_center(
    center_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    if await admin_crud.medical_center.get(db, center_id) is None:
        raise exc.NotFoundError(f"Center id {center_id} does not exist.")
    return Response(status_code=status.HTTP_200_OK)


@router.post("/centers/batch", response_model=List[admin_schemas.MedicalCenterRead], summary="의료센터 일괄 조회")
async def read_centers_batch(
    batch_in: admin_schemas.MedicalCenterBatchRequest,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.medical_center.get_by_ids(db, ids=batch_in.ids, include_deleted=batch_in.include_deleted)


@router.get("/centers/{center_id}", response_model=admin_schemas.MedicalCenterRead, summary="특정 의료센터 조회")
async def read_center(
    center_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    center = await admin_crud.medical_center.get(db, center_id)
    if center is None:
        raise exc.NotFoundError("Medical center not found.")
    return center


@router.post("/centers", response_model=admin_schemas.MedicalCenterRead, status_code=status.HTTP_201_CREATED, summary="새 의료센터 생성")
async def create_center(
    center_in: admin_schemas.MedicalCenterCreate,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.MedicalCenterWriteService = Depends(admin_services.get_medical_center_service),
):
    return await service.create(center_in)


@router.put("/centers/{center_id}", response_model=admin_schemas.MedicalCenterRead, summary="의료센터 갱신")
async def update_center(
    center_id: int,
    center_in: admin_schemas.MedicalCenterUpdate,
    lock: LockMode = Query(LockMode.OPTIMISTIC, description="동시성 제어 모드"),
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.MedicalCenterWriteService = Depends(admin_services.get_medical_center_service),
):
    if lock is LockMode.PESSIMISTIC:
        return await service.update_with_lock(center_id, center_in)
    return await service.update(center_id, center_in)


@router.delete("/centers/{center_id}", status_code=status.HTTP_204_NO_CONTENT, summary="의료센터 소프트 삭제")
async def delete_center(
    center_id: int,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.MedicalCenterWriteService = Depends(admin_services.get_medical_center_service),
):
    await service.soft_delete(center_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. 진료과 (Specialty) 엔드포인트
# =============================================================================
@router.get("/specialties", response_model=List[admin_schemas.SpecialtyRead], summary="활성 진료과 목록")
async def read_specialties(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.specialty.get_multi(db, skip=skip, limit=limit)


@router.get("/specialties/all", response_model=List[admin_schemas.SpecialtyReadWithDeleted], summary="삭제된 항목을 포함한 진료과 목록")
async def read_specialties_including_deleted(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.specialty.get_multi_including_deleted(db, skip=skip, limit=limit)


@router.get("/specialties/{specialty_id}", response_model=admin_schemas.SpecialtyRead, summary="특정 진료과 조회")
async def read_specialty(
    specialty_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    specialty = await admin_crud.specialty.get(db, specialty_id)
    if specialty is None:
        raise exc.NotFoundError("Specialty not found.")
    return specialty


@router.post("/specialties", response_model=admin_schemas.SpecialtyRead, status_code=status.HTTP_201_CREATED, summary="새 진료과 생성")
async def create_specialty(
    specialty_in: admin_schemas.SpecialtyCreate,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.SpecialtyWriteService = Depends(admin_services.get_specialty_service),
):
    return await service.create(specialty_in)


@router.put("/specialties/{specialty_id}", response_model=admin_schemas.SpecialtyRead, summary="진료과 갱신")
async def update_specialty(
    specialty_id: int,
    specialty_in: admin_schemas.SpecialtyUpdate,
    lock: LockMode = Query(LockMode.OPTIMISTIC, description="동시성 제어 모드"),
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.SpecialtyWriteService = Depends(admin_services.get_specialty_service),
):
    if lock is LockMode.PESSIMISTIC:
        return await service.update_with_lock(specialty_id, specialty_in)
    return await service.update(specialty_id, specialty_in)


@router.delete("/specialties/{specialty_id}", status_code=status.HTTP_204_NO_CONTENT, summary="진료과 소프트 삭제")
async def delete_specialty(
    specialty_id: int,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.SpecialtyWriteService = Depends(admin_services.get_specialty_service),
):
    await service.soft_delete(specialty_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 3. 의사 (Doctor) 엔드포인트
# =============================================================================
@router.get("/doctors", response_model=List[admin_schemas.DoctorRead], summary="활성 의사 목록")
async def read_doctors(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.doctor.get_multi(db, skip=skip, limit=limit)


@router.get("/doctors/all", response_model=List[admin_schemas.DoctorReadWithDeleted], summary="삭제된 항목을 포함한 의사 목록")
async def read_doctors_including_deleted(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(deps.get_session),
):
    return await admin_crud.doctor.get_multi_including_deleted(db, skip=skip, limit=limit)


@router.get("/doctors/validate/{doctor_id}", summary="의사 존재 확인 (200/404)")
async def validate_doctor(
    doctor_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    if await admin_crud.doctor.get(db, doctor_id) is None:
        raise exc.NotFoundError("Doctor not found.")
    return Response(status_code=status.HTTP_200_OK)


@router.get("/doctors/{doctor_id}", response_model=admin_schemas.DoctorRead, summary="특정 의사 조회")
async def read_doctor(
    doctor_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    doctor = await admin_crud.doctor.get(db, doctor_id)
    if doctor is None:
        raise exc.NotFoundError("Doctor not found.")
    return doctor


@router.get("/doctors/{doctor_id}/details", response_model=admin_schemas.DoctorDetails, summary="의사 상세 (사용자 정보 포함)")
async def read_doctor_details(
    doctor_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    service: admin_services.DoctorWriteService = Depends(admin_services.get_doctor_service),
):
    return await service.get_details(doctor_id, ctx)


@router.post("/doctors", response_model=admin_schemas.DoctorRead, status_code=status.HTTP_201_CREATED, summary="기존 사용자를 의사로 등록")
async def create_doctor(
    doctor_in: admin_schemas.DoctorCreate,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.DoctorWriteService = Depends(admin_services.get_doctor_service),
):
    return await service.create(doctor_in, ctx)


@router.post("/doctors/register", response_model=admin_schemas.DoctorRead, status_code=status.HTTP_201_CREATED, summary="사용자 등록 + 의사 생성")
async def register_doctor(
    register_in: admin_schemas.DoctorRegister,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.DoctorWriteService = Depends(admin_services.get_doctor_service),
):
    return await service.register_doctor(register_in, ctx)


@router.put("/doctors/{doctor_id}", response_model=admin_schemas.DoctorRead, summary="의사 갱신")
async def update_doctor(
    doctor_id: int,
    doctor_in: admin_schemas.DoctorUpdate,
    lock: LockMode = Query(LockMode.PESSIMISTIC, description="동시성 제어 모드 (원격 검증이 있어 기본은 비관적 잠금)"),
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.DoctorWriteService = Depends(admin_services.get_doctor_service),
):
    if lock is LockMode.OPTIMISTIC:
        return await service.update(doctor_id, doctor_in, ctx)
    return await service.update_with_lock(doctor_id, doctor_in, ctx)


@router.delete("/doctors/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT, summary="의사 소프트 삭제")
async def delete_doctor(
    doctor_id: int,
    ctx: deps.RequestContext = Depends(require_admin),
    service: admin_services.DoctorWriteService = Depends(admin_services.get_doctor_service),
):
    await service.soft_delete(doctor_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
