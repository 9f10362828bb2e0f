# tests/domains/test_consulting_n.py

"""
'consulting' 도메인 (환자, 진료)의 API 엔드포인트에 대한 통합 테스트를 정의하는 모듈입니다.
"""

from typing import Dict

import pytest
from httpx import AsyncClient


PATIENT = {
    "dni": "1710034065",
    "first_name": "Eva",
    "last_name": "Paz",
    "birth_date": "1990-05-01",
    "gender": "FEMALE",
}
FUTURE = "2099-01-01T10:00:00Z"
PAST = "2020-01-01T10:00:00Z"


async def _create_patient(client: AsyncClient, headers: Dict[str, str], **overrides) -> dict:
    response = await client.post("/consulting/patients", json={**PATIENT, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _consultation(patient_id: int, doctor_id: int, consultation_date: str = PAST) -> dict:
    return {
        "patient_id": patient_id,
        "doctor_id": doctor_id,
        "consultation_date": consultation_date,
        "diagnosis": "Hypertension",
        "treatment": "Losartan 50mg",
    }


# =============================================================================
# 1. 신원 헤더와 역할
# =============================================================================
@pytest.mark.asyncio
async def test_identity_headers_are_required(client: AsyncClient):
    response = await client.get("/consulting/patients", headers={"X-Roles": "DOCTOR"})
    assert response.status_code == 401
    detail = response.json()["detail"]
    assert detail.startswith("Missing identity headers")
    assert "X-User-Id" in detail


@pytest.mark.asyncio
async def test_admin_cannot_write_patients(client: AsyncClient, admin_headers: Dict[str, str], test_center: dict):
    response = await client.post("/consulting/patients", json=PATIENT, headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Required roles: DOCTOR"

    # 조회는 ADMIN 도 가능합니다.
    response = await client.get("/consulting/patients", headers=admin_headers)
    assert response.status_code == 200


# =============================================================================
# 2. 환자
# =============================================================================
@pytest.mark.asyncio
async def test_create_patient_defaults_to_caller_center(
    client: AsyncClient, doctor_headers: Dict[str, str], test_center: dict
):
    patient = await _create_patient(client, doctor_headers)
    assert patient["center_id"] == test_center["id"]
    assert patient["version"] == 0

    response = await client.get("/consulting/patients", headers=doctor_headers)
    assert [p["id"] for p in response.json()] == [patient["id"]]

    response = await client.get(
        f"/consulting/patients/center-has-patients/{test_center['id']}", headers=doctor_headers
    )
    assert response.status_code == 200
    response = await client.get("/consulting/patients/center-has-patients/77", headers=doctor_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_patient_rejects_invalid_dni(
    client: AsyncClient, doctor_headers: Dict[str, str], test_center: dict
):
    response = await client.post("/consulting/patients", json={**PATIENT, "dni": "1710034066"}, headers=doctor_headers)
    assert response.status_code == 400
    assert "dni" in response.json()["errors"]


@pytest.mark.asyncio
async def test_create_patient_rejects_duplicate_dni(
    client: AsyncClient, doctor_headers: Dict[str, str], test_center: dict
):
    await _create_patient(client, doctor_headers)
    response = await client.post("/consulting/patients", json=PATIENT, headers=doctor_headers)
    assert response.status_code == 400
    assert response.json()["errors"]["dni"] == "A patient with DNI 1710034065 already exists."


@pytest.mark.asyncio
async def test_create_patient_in_unknown_center(
    client: AsyncClient, identity_headers, test_center: dict
):
    response = await client.post(
        "/consulting/patients", json=PATIENT, headers=identity_headers("DOCTOR", center_id=55)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Center id 55 does not exist."


@pytest.mark.asyncio
async def test_update_patient_with_version(client: AsyncClient, doctor_headers: Dict[str, str], test_center: dict):
    patient = await _create_patient(client, doctor_headers)

    response = await client.put(
        f"/consulting/patients/{patient['id']}", json={"first_name": "Elena", "version": 0}, headers=doctor_headers
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Elena"
    assert response.json()["version"] == 1

    response = await client.put(
        f"/consulting/patients/{patient['id']}", json={"first_name": "Eli", "version": 0}, headers=doctor_headers
    )
    assert response.status_code == 409


# =============================================================================
# 3. 진료
# =============================================================================
@pytest.mark.asyncio
async def test_create_consultation(
    client: AsyncClient, doctor_headers: Dict[str, str], test_doctor: dict
):
    patient = await _create_patient(client, doctor_headers)
    response = await client.post(
        "/consulting/medical-consultations", json=_consultation(patient["id"], test_doctor["id"]), headers=doctor_headers
    )
    assert response.status_code == 201
    body = response.json()
    assert body["center_id"] == 1
    assert body["doctor_id"] == test_doctor["id"]

    response = await client.get(
        f"/consulting/medical-consultations?patient_id={patient['id']}", headers=doctor_headers
    )
    assert [c["id"] for c in response.json()] == [body["id"]]

    response = await client.get("/consulting/medical-consultations/center-has-consultations/1", headers=doctor_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_consultation_with_unknown_doctor(
    client: AsyncClient, doctor_headers: Dict[str, str], test_center: dict
):
    patient = await _create_patient(client, doctor_headers)
    response = await client.post(
        "/consulting/medical-consultations", json=_consultation(patient["id"], 42), headers=doctor_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"]["doctor_id"] == "Doctor 42 does not exist."


@pytest.mark.asyncio
async def test_create_consultation_with_unknown_patient(
    client: AsyncClient, doctor_headers: Dict[str, str], test_doctor: dict
):
    response = await client.post(
        "/consulting/medical-consultations", json=_consultation(999, test_doctor["id"]), headers=doctor_headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Patient not found."


@pytest.mark.asyncio
async def test_doctor_has_future_consultations(
    client: AsyncClient, doctor_headers: Dict[str, str], test_doctor: dict
):
    url = f"/consulting/medical-consultations/doctor-has-future-consultations/{test_doctor['id']}"
    patient = await _create_patient(client, doctor_headers)

    await client.post(
        "/consulting/medical-consultations", json=_consultation(patient["id"], test_doctor["id"]), headers=doctor_headers
    )
    assert (await client.get(url, headers=doctor_headers)).status_code == 404

    await client.post(
        "/consulting/medical-consultations",
        json=_consultation(patient["id"], test_doctor["id"], FUTURE),
        headers=doctor_headers,
    )
    assert (await client.get(url, headers=doctor_headers)).status_code == 200


@pytest.mark.asyncio
async def test_update_consultation_rejects_stale_version(
    client: AsyncClient, doctor_headers: Dict[str, str], test_doctor: dict
):
    patient = await _create_patient(client, doctor_headers)
    created = (await client.post(
        "/consulting/medical-consultations", json=_consultation(patient["id"], test_doctor["id"]), headers=doctor_headers
    )).json()
    url = f"/consulting/medical-consultations/{created['id']}"

    response = await client.put(url, json={"treatment": "Rest", "version": 0}, headers=doctor_headers)
    assert response.status_code == 200
    assert response.json()["version"] == 1

    response = await client.put(url, json={"treatment": "Diet", "version": 0}, headers=doctor_headers)
    assert response.status_code == 409


# =============================================================================
# 4. 삭제
# =============================================================================
@pytest.mark.asyncio
async def test_delete_patient_with_consultations_is_rejected(
    client: AsyncClient, doctor_headers: Dict[str, str], test_doctor: dict
):
    patient = await _create_patient(client, doctor_headers)
    created = (await client.post(
        "/consulting/medical-consultations", json=_consultation(patient["id"], test_doctor["id"]), headers=doctor_headers
    )).json()

    response = await client.delete(f"/consulting/patients/{patient['id']}", headers=doctor_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "The patient has medical consultations and cannot be deleted."

    # 진료를 먼저 삭제하면 환자를 삭제할 수 있습니다.
    response = await client.delete(f"/consulting/medical-consultations/{created['id']}", headers=doctor_headers)
    assert response.status_code == 204
    response = await client.delete(f"/consulting/patients/{patient['id']}", headers=doctor_headers)
    assert response.status_code == 204
    response = await client.get(f"/consulting/patients/{patient['id']}", headers=doctor_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_missing_patient(client: AsyncClient, doctor_headers: Dict[str, str]):
    response = await client.delete("/consulting/patients/404", headers=doctor_headers)
    assert response.status_code == 404
