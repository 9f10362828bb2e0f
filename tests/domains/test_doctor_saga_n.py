# tests/domains/test_doctor_saga_n.py

"""
의사 등록 사가(auth 사용자 등록 -> 로컬 의사 생성 -> 실패 시 보상)와
의사 삭제(향후 진료 확인 -> auth 사용자 비활성화 -> 소프트 삭제)를 테스트합니다.
"""

import asyncio
from typing import Dict

import httpx
import pytest
from httpx import AsyncClient

from app.main import app as main_app
from app.core import dependencies as deps
from app.core.context import RequestContext
from app.clients import AuthUserClient
from app.clients.schemas import RemoteUser
from app.domains.admin.schemas import DoctorRegister
from app.domains.admin.services import DoctorWriteService


CTX = RequestContext(user_id=1000, roles=frozenset({"ADMIN"}), center_id=1, trace_id="saga-test")


def _register_payload(**overrides) -> dict:
    payload = {
        "username": "1710034065",
        "password": "secret123",
        "email": "saga@hospital.ec",
        "gender": "FEMALE",
        "first_name": "Ana",
        "last_name": "Vera",
        "center_id": 1,
        "specialty_id": 1,
    }
    payload.update(overrides)
    return payload


class CompensationFailingAuthClient:
    """사용자 등록은 실제 클라이언트에 위임하고, 보상(사용자 삭제)은 항상 실패하는 auth 클라이언트."""

    def __init__(self, delegate: AuthUserClient):
        self.delegate = delegate
        self.delete_calls = 0

    async def register(self, user_in, context):
        return await self.delegate.register(user_in, context)

    async def exists_user_by_id(self, user_id, context):
        return await self.delegate.exists_user_by_id(user_id, context)

    async def delete_user(self, user_id, context, *, hard=False):
        self.delete_calls += 1
        raise RuntimeError("auth service is down")


class RecordingAuthClient:
    """사용자 등록은 항상 id=77 로 성공하고, 삭제 호출을 기록하는 auth 클라이언트."""

    def __init__(self):
        self.delete_calls = []

    async def register(self, user_in, context):
        return RemoteUser(
            id=77, username=user_in.username, first_name=user_in.first_name,
            last_name=user_in.last_name, center_id=user_in.center_id, roles=["DOCTOR"],
        )

    async def delete_user(self, user_id, context, *, hard=False):
        self.delete_calls.append((user_id, hard))
        return True


# =============================================================================
# 1. 등록 사가
# =============================================================================
@pytest.mark.asyncio
async def test_register_doctor_creates_user_and_doctor(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict, test_specialty: dict
):
    response = await client.post("/admin/doctors/register", json=_register_payload(), headers=admin_headers)
    assert response.status_code == 201
    doctor = response.json()
    assert doctor["specialty_id"] == test_specialty["id"]
    assert doctor["version"] == 0

    response = await client.get(f"/auth/users/{doctor['user_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["roles"] == ["DOCTOR"]


@pytest.mark.asyncio
async def test_register_doctor_compensates_when_specialty_is_missing(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict, remote_clients: dict
):
    response = await client.post(
        "/admin/doctors/register", json=_register_payload(specialty_id=3), headers=admin_headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "The specified specialty does not exist."

    # 보상 단계에서 등록된 사용자(id=1)가 물리 삭제되었습니다.
    assert await remote_clients["auth"].exists_user_by_id(1, CTX) is False
    response = await client.get("/auth/users/1?include_disabled=true", headers=admin_headers)
    assert response.status_code == 404
    response = await client.get("/admin/doctors/all", headers=admin_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_register_doctor_with_duplicate_username_does_not_create_doctor(
    client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict
):
    response = await client.post(
        "/admin/doctors/register",
        json=_register_payload(username="0926687856", email="other@hospital.ec"),
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "username" in response.json()["errors"]

    response = await client.get("/admin/doctors", headers=admin_headers)
    assert [d["id"] for d in response.json()] == [test_doctor["id"]]


@pytest.mark.asyncio
async def test_failed_compensation_still_returns_original_error(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict, remote_clients: dict
):
    failing = CompensationFailingAuthClient(remote_clients["auth"])
    main_app.dependency_overrides[deps.get_auth_client] = lambda: failing

    response = await client.post(
        "/admin/doctors/register", json=_register_payload(specialty_id=3), headers=admin_headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "The specified specialty does not exist."
    assert failing.delete_calls == 1

    # 보상이 실패했으므로 사용자는 남아 있습니다.
    assert await remote_clients["auth"].exists_user_by_id(1, CTX) is True

@pytest.mark.asyncio
async def test_register_doctor_without_specialty(
    client: AsyncClient, admin_headers: Dict[str, str], test_center: dict
):
    payload = _register_payload()
    del payload["specialty_id"]
    response = await client.post("/admin/doctors/register", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["specialty_id"] is None

    response = await client.get(f"/admin/doctors/{response.json()['id']}/details", headers=admin_headers)
    assert response.json()["specialty"] is None


@pytest.mark.asyncio
async def test_cancelled_registration_still_deletes_user(db_session, monkeypatch):
    auth = RecordingAuthClient()
    service = DoctorWriteService(db_session, auth, consulting_client=None)
    started = asyncio.Event()

    async def slow_create(obj_in, ctx):
        started.set()
        await asyncio.sleep(10)

    monkeypatch.setattr(service, "create", slow_create)

    task = asyncio.create_task(service.register_doctor(DoctorRegister(**_register_payload()), CTX))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert auth.delete_calls == [(77, True)]



# =============================================================================
# 2. 의사 조회 / 갱신
# =============================================================================
@pytest.mark.asyncio
async def test_doctor_details(client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict):
    response = await client.get(f"/admin/doctors/{test_doctor['id']}/details", headers=admin_headers)
    assert response.status_code == 200
    details = response.json()
    assert details["username"] == "0926687856"
    assert details["first_name"] == "Luis"
    assert details["user_enabled"] is True
    assert details["specialty"]["name"] == "Cardiology"


@pytest.mark.asyncio
async def test_update_doctor_specialty(client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict):
    other = (await client.post(
        "/admin/specialties", json={"name": "Neurology"}, headers=admin_headers
    )).json()
    url = f"/admin/doctors/{test_doctor['id']}"

    response = await client.put(url, json={"specialty_id": other["id"], "version": 0}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["specialty_id"] == other["id"]
    assert response.json()["version"] == 1

    response = await client.put(url, json={"specialty_id": 1, "version": 0}, headers=admin_headers)
    assert response.status_code == 409

    response = await client.put(f"{url}?lock=optimistic", json={"specialty_id": 1, "version": 1}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["version"] == 2

    response = await client.put(url, json={"specialty_id": 99}, headers=admin_headers)
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_update_doctor_clears_specialty_with_explicit_null(
    client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict
):
    url = f"/admin/doctors/{test_doctor['id']}"

    # specialty_id 를 생략한 갱신은 진료과를 유지합니다.
    response = await client.put(url, json={"version": 0}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["specialty_id"] == test_doctor["specialty_id"]

    response = await client.put(url, json={"specialty_id": None, "version": 1}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["specialty_id"] is None
    assert response.json()["version"] == 2



# =============================================================================
# 3. 의사 삭제
# =============================================================================
@pytest.mark.asyncio
async def test_delete_doctor_with_future_consultations_is_rejected(
    client: AsyncClient, admin_headers: Dict[str, str], doctor_headers: Dict[str, str], test_doctor: dict
):
    patient = (await client.post(
        "/consulting/patients",
        json={"dni": "1710034065", "first_name": "Eva", "last_name": "Paz", "birth_date": "1990-05-01", "gender": "FEMALE"},
        headers=doctor_headers,
    )).json()
    response = await client.post(
        "/consulting/medical-consultations",
        json={
            "patient_id": patient["id"],
            "doctor_id": test_doctor["id"],
            "consultation_date": "2099-01-01T10:00:00Z",
            "diagnosis": "Checkup",
            "treatment": "None",
        },
        headers=doctor_headers,
    )
    assert response.status_code == 201

    response = await client.delete(f"/admin/doctors/{test_doctor['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "The doctor has future appointments and cannot be deleted."

    response = await client.get(f"/auth/users/{test_doctor['user_id']}", headers=admin_headers)
    assert response.json()["enabled"] is True


@pytest.mark.asyncio
async def test_delete_doctor_disables_user(client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict):
    response = await client.delete(f"/admin/doctors/{test_doctor['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"/admin/doctors/{test_doctor['id']}", headers=admin_headers)
    assert response.status_code == 404
    response = await client.get(f"/auth/users/{test_doctor['user_id']}?include_disabled=true", headers=admin_headers)
    assert response.json()["enabled"] is False


@pytest.mark.asyncio
async def test_delete_doctor_when_auth_fails_keeps_doctor(
    client: AsyncClient, admin_headers: Dict[str, str], test_doctor: dict
):
    broken = AuthUserClient(
        "http://auth",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "database is down"})),
        retry_attempts=1,
        retry_backoff=0,
    )
    main_app.dependency_overrides[deps.get_auth_client] = lambda: broken

    response = await client.delete(f"/admin/doctors/{test_doctor['id']}", headers=admin_headers)
    assert response.status_code == 502

    response = await client.get(f"/admin/doctors/{test_doctor['id']}", headers=admin_headers)
    assert response.status_code == 200
    await broken.aclose()
