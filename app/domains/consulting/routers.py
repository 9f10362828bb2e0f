# app/domains/consulting/routers.py

"""
'consulting' 도메인 (환자, 진료)과 관련된 API 엔드포인트를 정의하는 모듈입니다.

모든 라우트는 게이트웨이가 주입한 신원 헤더(X-User-Id, X-Roles, X-Center-Id)를 요구합니다.
조회는 ADMIN 또는 DOCTOR, 쓰기는 DOCTOR 역할이 필요합니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps

from . import crud as consulting_crud
from . import schemas as consulting_schemas
from . import services as consulting_services


router = APIRouter(
    tags=["Consulting (환자 및 진료 관리)"],
    dependencies=[Depends(deps.require_identity_headers)],
    responses={404: {"description": "Not found"}},
)

require_staff = deps.require_any("ADMIN", "DOCTOR")
require_doctor = deps.require_all("DOCTOR")


def _exists_response(found: bool) -> Response:
    if found:
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_404_NOT_FOUND)


# =============================================================================
# 1. 환자 (Patient) 엔드포인트
# =============================================================================
@router.get("/patients", response_model=List[consulting_schemas.PatientRead], summary="의료센터별 환자 목록")
async def read_patients(
    center_id: Optional[int] = Query(None, description="생략하면 호출자의 의료센터"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    target = center_id if center_id is not None else ctx.center_id
    return await consulting_crud.patient.get_multi(db, skip=skip, limit=limit, center_id=target)


@router.get("/patients/center-has-patients/{center_id}", summary="의료센터에 활성 환자가 있는지 확인 (200/404)")
async def center_has_patients(
    center_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    return _exists_response(await consulting_crud.patient.exists_active_by_center(db, center_id=center_id))


@router.get("/patients/{patient_id}", response_model=consulting_schemas.PatientRead, summary="특정 환자 조회")
async def read_patient(
    patient_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    service: consulting_services.PatientService = Depends(consulting_services.get_patient_service),
):
    return await service.get(patient_id)


@router.post("/patients", response_model=consulting_schemas.PatientRead, status_code=status.HTTP_201_CREATED, summary="새 환자 등록")
async def create_patient(
    patient_in: consulting_schemas.PatientCreate,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.PatientService = Depends(consulting_services.get_patient_service),
):
    return await service.create(patient_in, ctx)


@router.put("/patients/{patient_id}", response_model=consulting_schemas.PatientRead, summary="환자 정보 갱신")
async def update_patient(
    patient_id: int,
    patient_in: consulting_schemas.PatientUpdate,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.PatientService = Depends(consulting_services.get_patient_service),
):
    return await service.update(patient_id, patient_in, ctx)


@router.delete("/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT, summary="환자 소프트 삭제")
async def delete_patient(
    patient_id: int,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.PatientService = Depends(consulting_services.get_patient_service),
):
    await service.soft_delete(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. 진료 (MedicalConsultation) 엔드포인트
# =============================================================================
@router.get("/medical-consultations", response_model=List[consulting_schemas.MedicalConsultationRead], summary="진료 목록")
async def read_consultations(
    patient_id: Optional[int] = Query(None),
    doctor_id: Optional[int] = Query(None),
    center_id: Optional[int] = Query(None, description="생략하면 호출자의 의료센터"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    filters = {"center_id": center_id if center_id is not None else ctx.center_id}
    if patient_id is not None:
        filters["patient_id"] = patient_id
    if doctor_id is not None:
        filters["doctor_id"] = doctor_id
    return await consulting_crud.medical_consultation.get_multi_by(db, skip=skip, limit=limit, **filters)


@router.get("/medical-consultations/center-has-consultations/{center_id}", summary="의료센터에 진료가 있는지 확인 (200/404)")
async def center_has_consultations(
    center_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    found = await consulting_crud.medical_consultation.exists_active_by_center(db, center_id=center_id)
    return _exists_response(found)


@router.get("/medical-consultations/doctor-has-future-consultations/{doctor_id}", summary="의사에게 예정된 진료가 있는지 확인 (200/404)")
async def doctor_has_future_consultations(
    doctor_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    db: AsyncSession = Depends(deps.get_session),
):
    found = await consulting_crud.medical_consultation.exists_future_by_doctor(db, doctor_id=doctor_id)
    return _exists_response(found)


@router.get("/medical-consultations/{consultation_id}", response_model=consulting_schemas.MedicalConsultationRead, summary="특정 진료 조회")
async def read_consultation(
    consultation_id: int,
    ctx: deps.RequestContext = Depends(require_staff),
    service: consulting_services.MedicalConsultationService = Depends(consulting_services.get_consultation_service),
):
    return await service.get(consultation_id)


@router.post("/medical-consultations", response_model=consulting_schemas.MedicalConsultationRead, status_code=status.HTTP_201_CREATED, summary="새 진료 등록")
async def create_consultation(
    consultation_in: consulting_schemas.MedicalConsultationCreate,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.MedicalConsultationService = Depends(consulting_services.get_consultation_service),
):
    return await service.create(consultation_in, ctx)


@router.put("/medical-consultations/{consultation_id}", response_model=consulting_schemas.MedicalConsultationRead, summary="진료 갱신")
async def update_consultation(
    consultation_id: int,
    consultation_in: consulting_schemas.MedicalConsultationUpdate,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.MedicalConsultationService = Depends(consulting_services.get_consultation_service),
):
    return await service.update(consultation_id, consultation_in, ctx)


@router.delete("/medical-consultations/{consultation_id}", status_code=status.HTTP_204_NO_CONTENT, summary="진료 소프트 삭제")
async def delete_consultation(
    consultation_id: int,
    ctx: deps.RequestContext = Depends(require_doctor),
    service: consulting_services.MedicalConsultationService = Depends(consulting_services.get_consultation_service),
):
    await service.soft_delete(consultation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
