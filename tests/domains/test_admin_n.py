# tests/domains/test_admin_n.py

"""
'admin' 도메인 (의료센터, 진료과)의 API 엔드포인트에 대한 통합 테스트를 정의하는 모듈입니다.

- 생성/조회/낙관적 갱신/비관적 갱신
- 고유성 검사
- 의존 데이터(사용자, 환자, 진료) 확인 후 소프트 삭제
"""

from typing import Dict

import httpx
import pytest
from httpx import AsyncClient

from app.main import app as main_app
from app.core import dependencies as deps
from app.clients import ConsultingClient


CENTER = {"name": "Hosp A", "city": "Quito", "address": "Av 1"}


# =============================================================================
# 1. 의료센터 생성 및 조회
# =============================================================================
@pytest.mark.asyncio
async def test_create_center_starts_at_version_zero(client: AsyncClient, admin_headers: Dict[str, str]):
    response = await client.post("/admin/centers", json=CENTER, headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["version"] == 0
    assert body["name"] == "Hosp A"

    response = await client.get(f"/admin/centers/{body['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["city"] == "Quito"


@pytest.mark.asyncio
async def test_create_center_requires_admin(
    client: AsyncClient, admin_headers: Dict[str, str], doctor_headers: Dict[str, str]
):
    response = await client.post("/admin/centers", json=CENTER, headers=doctor_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Required role: ADMIN"

    response = await client.post("/admin/centers", json=CENTER)
    assert response.status_code == 401

    # 거부된 요청은 아무 것도 저장하지 않습니다.
    response = await client.get("/admin/centers", headers=admin_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_create_center_rejects_duplicates(client: AsyncClient, admin_headers: Dict[str, str]):
    await client.post("/admin/centers", json=CENTER, headers=admin_headers)
    response = await client.post(
        "/admin/centers",
        json={"name": "hosp a", "city": "Cuenca", "address": "Av 1"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "name" in errors
    assert "address" in errors


@pytest.mark.asyncio
async def test_centers_batch_and_validate(client: AsyncClient, admin_headers: Dict[str, str], test_center: dict):
    response = await client.post(
        "/admin/centers/batch", json={"ids": [test_center["id"], 999]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [test_center["id"]]

    assert (await client.get(f"/admin/centers/validate/{test_center['id']}", headers=admin_headers)).status_code == 200
    response = await client.get("/admin/centers/validate/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Center id 999 does not exist."


# =============================================================================
# 2. 동시성 제어
# =============================================================================
@pytest.mark.asyncio
async def test_optimistic_update_rejects_stale_version(client: AsyncClient, admin_headers: Dict[str, str]):
    created = (await client.post("/admin/centers", json=CENTER, headers=admin_headers)).json()
    update = {"name": "Hosp A2", "city": "Quito", "address": "Av 1", "version": 0}

    response = await client.put(f"/admin/centers/{created['id']}", json=update, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["version"] == 1
    assert response.json()["name"] == "Hosp A2"

    response = await client.put(f"/admin/centers/{created['id']}", json=update, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_pessimistic_update(client: AsyncClient, admin_headers: Dict[str, str], test_center: dict):
    update = {"name": "Hospital Norte", "city": "Quito", "address": "Av. Amazonas 100"}
    response = await client.put(
        f"/admin/centers/{test_center['id']}?lock=pessimistic", json=update, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["version"] == 1

    stale = {**update, "version": 0}
    response = await client.put(
        f"/admin/centers/{test_center['id']}?lock=pessimistic", json=stale, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_missing_center_is_not_found(client: AsyncClient, admin_headers: Dict[str, str]):
    response = await client.put("/admin/centers/999", json=CENTER, headers=admin_headers)
    assert response.status_code == 404


# =============================================================================
# 3. 의료센터 소프트 삭제
# =============================================================================
@pytest.mark.asyncio
async def test_delete_center_without_dependents(client: AsyncClient, admin_headers: Dict[str, str], test_center: dict):
    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 404

    response = await client.get("/admin/centers/all", headers=admin_headers)
    assert response.json()[0]["deleted"] is True

    # 삭제된 센터의 이름은 다시 사용할 수 있습니다.
    response = await client.post(
        "/admin/centers",
        json={"name": "Hospital Central", "city": "Quito", "address": "Av. Amazonas 100"},
        headers=admin_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_delete_center_with_active_users_is_rejected(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict, user_payload
):
    response = await client.post("/auth/register", json=user_payload(), headers=admin_headers)
    assert response.status_code == 201

    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete the medical center: it has active users."


@pytest.mark.asyncio
async def test_delete_center_with_active_patients_is_rejected(
    client: AsyncClient, admin_headers: Dict[str, str], doctor_headers: Dict[str, str], test_center: dict
):
    response = await client.post(
        "/consulting/patients",
        json={"dni": "1710034065", "first_name": "Eva", "last_name": "Paz", "birth_date": "1990-05-01", "gender": "FEMALE"},
        headers=doctor_headers,
    )
    assert response.status_code == 201

    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete the medical center: it has active patients."

@pytest.mark.asyncio
async def test_delete_center_with_consultations_is_rejected(
    client: AsyncClient, admin_headers: Dict[str, str], identity_headers, test_center: dict
):
    other = (await client.post("/admin/centers", json=CENTER, headers=admin_headers)).json()
    # 의사와 환자는 다른 센터에 두고, 진료만 삭제 대상 센터에 기록합니다.
    doctor = (await client.post(
        "/admin/doctors/register",
        json={
            "username": "0926687856", "password": "secret123", "gender": "MALE",
            "first_name": "Luis", "last_name": "Mora", "center_id": other["id"],
        },
        headers=admin_headers,
    )).json()
    other_headers = identity_headers("DOCTOR", user_id=2000, center_id=other["id"])
    patient = (await client.post(
        "/consulting/patients",
        json={"dni": "1710034065", "first_name": "Eva", "last_name": "Paz", "birth_date": "1990-05-01", "gender": "FEMALE"},
        headers=other_headers,
    )).json()
    response = await client.post(
        "/consulting/medical-consultations",
        json={
            "patient_id": patient["id"],
            "doctor_id": doctor["id"],
            "center_id": test_center["id"],
            "consultation_date": "2020-01-01T10:00:00Z",
            "diagnosis": "Checkup",
            "treatment": "None",
        },
        headers=other_headers,
    )
    assert response.status_code == 201

    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete the medical center: it has active appointments."

    response = await client.get(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_delete_center_reports_users_before_patients(
    client: AsyncClient, admin_headers: Dict[str, str], doctor_headers: Dict[str, str], test_center: dict, user_payload
):
    response = await client.post("/auth/register", json=user_payload(), headers=admin_headers)
    assert response.status_code == 201
    response = await client.post(
        "/consulting/patients",
        json={"dni": "1710034065", "first_name": "Eva", "last_name": "Paz", "birth_date": "1990-05-01", "gender": "FEMALE"},
        headers=doctor_headers,
    )
    assert response.status_code == 201

    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete the medical center: it has active users."



@pytest.mark.asyncio
async def test_delete_center_when_consulting_is_unreachable(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict
):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    unreachable = ConsultingClient("http://consulting", transport=httpx.MockTransport(handler), retry_backoff=0)
    main_app.dependency_overrides[deps.get_consulting_client] = lambda: unreachable

    response = await client.delete(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 502
    assert response.json()["detail"] == "Error communicating with external services."

    response = await client.get(f"/admin/centers/{test_center['id']}", headers=admin_headers)
    assert response.status_code == 200
    await unreachable.aclose()


@pytest.mark.asyncio
async def test_delete_missing_center_is_not_found(client: AsyncClient, admin_headers: Dict[str, str]):
    response = await client.delete("/admin/centers/999", headers=admin_headers)
    assert response.status_code == 404


# =============================================================================
# 4. 진료과
# =============================================================================
@pytest.mark.asyncio
async def test_specialty_crud(client: AsyncClient, admin_headers: Dict[str, str], test_specialty: dict):
    response = await client.post("/admin/specialties", json={"name": "cardiology"}, headers=admin_headers)
    assert response.status_code == 400
    assert "name" in response.json()["errors"]

    response = await client.put(
        f"/admin/specialties/{test_specialty['id']}",
        json={"name": "Cardiología", "description": "Corazón", "version": 0},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["version"] == 1

    response = await client.delete(f"/admin/specialties/{test_specialty['id']}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get(f"/admin/specialties/{test_specialty['id']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_specialty_with_linked_doctors_is_rejected(
    client: AsyncClient, admin_headers: Dict[str, str], test_specialty: dict, test_doctor: dict
):
    response = await client.delete(f"/admin/specialties/{test_specialty['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete the specialty: 1 active doctors are linked to it."
