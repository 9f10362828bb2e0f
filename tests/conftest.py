# tests/conftest.py

import os
import sys
import tempfile
from typing import AsyncGenerator, Callable, Dict

# --- 테스트용 환경 변수 ---
# app 모듈을 임포트하기 전에 설정해야 Settings 에 반영됩니다.
_TEST_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="hospital-tests-"), "test.db")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_FILE}")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("GATEWAY_ENABLED", "false")
os.environ.setdefault("REMOTE_RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("LOG_JSON", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# app.main 을 임포트하여 FastAPI 앱 인스턴스에 접근합니다.
from app.main import app as main_app  # noqa: E402
from app.core import dependencies as deps  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.clients import AdminClient, AuthUserClient, ConsultingClient  # noqa: E402
from app.domains.auth import crud as auth_crud  # noqa: E402


# --- 테스트용 데이터베이스 설정 ---
test_engine = create_async_engine(
    settings.DATABASE_URL.get_secret_value(),
    echo=False,
    future=True,
    poolclass=NullPool,  # 각 연결이 독립적으로 사용되고 바로 닫히도록 함
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

BASE_URL = "http://test"


# --- 데이터베이스 픽스처 ---
@pytest_asyncio.fixture(scope="function", autouse=True)
async def setup_database() -> AsyncGenerator[None, None]:
    """
    각 테스트마다 모든 테이블을 재생성하고 기본 역할(ADMIN, DOCTOR)을 준비합니다.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    async with TestingSessionLocal() as session:
        await auth_crud.role.ensure(session, names=["ADMIN", "DOCTOR"])

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """테스트 본문에서 DB 상태를 직접 확인할 때 사용하는 세션입니다."""
    async with TestingSessionLocal() as session:
        yield session


async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
    # 요청마다 새 세션: 서비스 간 루프백 호출이 서로 다른 세션을 사용합니다.
    async with TestingSessionLocal() as session:
        yield session


def _loopback_transport() -> ASGITransport:
    return ASGITransport(app=main_app, raise_app_exceptions=False)


# --- 앱 클라이언트 픽스처 ---
# 역할: 같은 프로세스의 앱을 admin/auth/consulting 서비스로 사용합니다.
#   원격 클라이언트는 ASGITransport 로 앱 자신을 호출하므로, 서비스 간 흐름(사가, 삭제 검사)이
#   실제 HTTP 경계를 거쳐 실행됩니다.
@pytest_asyncio.fixture(scope="function")
async def remote_clients() -> AsyncGenerator[Dict[str, object], None]:
    clients = {
        "auth": AuthUserClient(BASE_URL, transport=_loopback_transport(), retry_backoff=0),
        "admin": AdminClient(BASE_URL, transport=_loopback_transport(), retry_backoff=0),
        "consulting": ConsultingClient(BASE_URL, transport=_loopback_transport(), retry_backoff=0),
    }
    yield clients
    for client in clients.values():
        await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def client(remote_clients: Dict[str, object]) -> AsyncGenerator[AsyncClient, None]:
    """의존성을 테스트용으로 교체한 AsyncClient 를 반환합니다."""
    original_overrides = main_app.dependency_overrides.copy()
    try:
        main_app.dependency_overrides.update({
            deps.get_session: override_get_session,
            deps.get_auth_client: lambda: remote_clients["auth"],
            deps.get_admin_client: lambda: remote_clients["admin"],
            deps.get_consulting_client: lambda: remote_clients["consulting"],
        })
        async with AsyncClient(transport=_loopback_transport(), base_url=BASE_URL) as ac:
            yield ac
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)


# --- 신원 헤더 픽스처 ---
# 게이트웨이가 주입하는 신뢰 헤더를 직접 만듭니다.
@pytest.fixture
def identity_headers() -> Callable[..., Dict[str, str]]:
    def _headers(roles: str = "ADMIN", user_id: int = 1000, center_id: int = 1) -> Dict[str, str]:
        return {"X-User-Id": str(user_id), "X-Roles": roles, "X-Center-Id": str(center_id)}
    return _headers


@pytest.fixture
def admin_headers(identity_headers: Callable[..., Dict[str, str]]) -> Dict[str, str]:
    return identity_headers("ADMIN")


@pytest.fixture
def doctor_headers(identity_headers: Callable[..., Dict[str, str]]) -> Dict[str, str]:
    return identity_headers("DOCTOR", user_id=2000)


# --- 도메인 데이터 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def test_center(client: AsyncClient, admin_headers: Dict[str, str]) -> dict:
    """테스트용 의료센터 (id=1)를 API 로 생성하고 반환합니다."""
    response = await client.post(
        "/admin/centers",
        json={"name": "Hospital Central", "city": "Quito", "address": "Av. Amazonas 100"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture(scope="function")
async def test_specialty(client: AsyncClient, admin_headers: Dict[str, str]) -> dict:
    response = await client.post(
        "/admin/specialties",
        json={"name": "Cardiology", "description": "Heart"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user_payload() -> Callable[..., dict]:
    def _payload(username: str = "1710034065", **overrides) -> dict:
        payload = {
            "username": username,
            "password": "secret123",
            "email": f"{username}@hospital.ec",
            "gender": "FEMALE",
            "first_name": "Ana",
            "last_name": "Vera",
            "center_id": 1,
            "roles": ["DOCTOR"],
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest_asyncio.fixture(scope="function")
async def test_doctor(
    client: AsyncClient,
    admin_headers: Dict[str, str],
    test_center: dict,
    test_specialty: dict,
) -> dict:
    """사가(/admin/doctors/register)로 사용자와 의사를 함께 생성합니다."""
    response = await client.post(
        "/admin/doctors/register",
        json={
            "username": "0926687856",
            "password": "secret123",
            "email": "doctor@hospital.ec",
            "gender": "MALE",
            "first_name": "Luis",
            "last_name": "Mora",
            "center_id": test_center["id"],
            "specialty_id": test_specialty["id"],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
