# tests/test_gateway.py

"""
게이트웨이 미들웨어(GatewayAuthMiddleware)의 토큰 검증과 신뢰 헤더 변환을 테스트합니다.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from httpx import AsyncClient, ASGITransport

from app.core.security import create_access_token
from app.gateway import GatewayAuthMiddleware, RequestContextMiddleware


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(GatewayAuthMiddleware)
    app.add_middleware(RequestContextMiddleware)

    @app.get("/admin/echo")
    async def echo(request: Request):
        return {
            "user_id": request.headers.get("X-User-Id"),
            "roles": request.headers.get("X-Roles"),
            "center_id": request.headers.get("X-Center-Id"),
        }

    @app.post("/auth/login")
    async def login(request: Request):
        return {"roles": request.headers.get("X-Roles")}

    return app


@pytest_asyncio.fixture
async def gateway_client():
    transport = ASGITransport(app=_build_app())
    async with AsyncClient(transport=transport, base_url="http://gateway") as ac:
        yield ac


def _token(**claims) -> str:
    data = {"sub": "1710034065", "userId": 7, "roles": ["ADMIN", "DOCTOR"], "centerId": 3}
    data.update(claims)
    return create_access_token(data=data, expires_delta=timedelta(minutes=5))


@pytest.mark.asyncio
async def test_valid_token_is_translated_into_identity_headers(gateway_client: AsyncClient):
    response = await gateway_client.get("/admin/echo", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 200
    assert response.json() == {"user_id": "7", "roles": "ADMIN,DOCTOR", "center_id": "3"}


@pytest.mark.asyncio
async def test_client_supplied_identity_headers_are_replaced(gateway_client: AsyncClient):
    response = await gateway_client.get(
        "/admin/echo",
        headers={"Authorization": f"Bearer {_token(roles=['DOCTOR'])}", "X-Roles": "ADMIN", "X-User-Id": "1"},
    )
    assert response.status_code == 200
    assert response.json()["roles"] == "DOCTOR"
    assert response.json()["user_id"] == "7"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(gateway_client: AsyncClient):
    response = await gateway_client.get("/admin/echo", headers={"X-Roles": "ADMIN"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Missing bearer token"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(gateway_client: AsyncClient):
    token = create_access_token(data={"userId": 7, "roles": ["ADMIN"]}, expires_delta=timedelta(minutes=-1))
    response = await gateway_client.get("/admin/echo", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_public_path_passes_without_token_and_strips_headers(gateway_client: AsyncClient):
    response = await gateway_client.post("/auth/login", headers={"X-Roles": "ADMIN"})
    assert response.status_code == 200
    assert response.json() == {"roles": None}
