# app/clients/__init__.py

"""
원격 서비스 클라이언트 패키지입니다.

클라이언트는 프로세스당 하나씩 생성되어 회로 차단기 상태를 요청 사이에 공유합니다.
라우터는 get_*_client 의존성으로 클라이언트를 주입받으며, 테스트에서는
dependency_overrides 로 다른 전송 계층(ASGITransport, MockTransport)을 사용하는 클라이언트로 교체합니다.
"""

from typing import Dict

from app.core.config import settings
from app.clients.base import RemoteServiceClient
from app.clients.admin_client import AdminClient
from app.clients.auth_client import AuthUserClient
from app.clients.consulting_client import ConsultingClient

_clients: Dict[str, RemoteServiceClient] = {}


def get_auth_client() -> AuthUserClient:
    if "auth" not in _clients:
        _clients["auth"] = AuthUserClient(settings.AUTH_SERVICE_URL)
    return _clients["auth"]


def get_admin_client() -> AdminClient:
    if "admin" not in _clients:
        _clients["admin"] = AdminClient(settings.ADMIN_SERVICE_URL)
    return _clients["admin"]


def get_consulting_client() -> ConsultingClient:
    if "consulting" not in _clients:
        _clients["consulting"] = ConsultingClient(settings.CONSULTING_SERVICE_URL)
    return _clients["consulting"]


async def close_clients() -> None:
    """애플리케이션 종료 시 모든 클라이언트의 커넥션 풀을 닫습니다."""
    for client in list(_clients.values()):
        await client.aclose()
    _clients.clear()


__all__ = [
    "AdminClient",
    "AuthUserClient",
    "ConsultingClient",
    "RemoteServiceClient",
    "get_admin_client",
    "get_auth_client",
    "get_consulting_client",
    "close_clients",
]
