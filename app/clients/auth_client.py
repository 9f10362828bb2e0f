# app/clients/auth_client.py

"""
auth(신원) 서비스 클라이언트입니다. admin 서비스의 의사 등록 사가와 삭제 검사에서 사용합니다.
"""

import logging
from typing import Any, Optional

import httpx

from app.clients.base import RemoteServiceClient
from app.clients.schemas import RemoteUser, RemoteUserCreate
from app.core import exceptions as exc
from app.core.context import RequestContext

logger = logging.getLogger(__name__)


def _raw_id(response: httpx.Response) -> Optional[Any]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("id") if isinstance(body, dict) else None


class AuthUserClient(RemoteServiceClient):
    service_name = "auth"

    async def register(self, user_in: RemoteUserCreate, context: RequestContext) -> RemoteUser:
        """
        사용자를 등록하고 생성된 사용자를 반환합니다.
        2xx 인데 본문을 해석할 수 없으면 원격에 사용자가 남았을 수 있으므로 식별 가능한 id 를 기록합니다.
        """
        response = await self.request("POST", "/auth/register", context, json=user_in.model_dump(mode="json"))
        self.raise_for_error(response)
        try:
            return self.parse_model(response, RemoteUser)
        except exc.BadGatewayError:
            logger.error(
                "auth accepted user %s but the response was unreadable; possible orphaned user id=%s trace=%s",
                user_in.username, _raw_id(response), context.trace_id,
            )
            raise

    async def get_user_by_id(
        self, user_id: int, context: RequestContext, *, include_disabled: bool = False
    ) -> RemoteUser:
        response = await self.request(
            "GET", f"/auth/users/{user_id}", context, params={"include_disabled": include_disabled}
        )
        self.raise_for_error(response)
        return self.parse_model(response, RemoteUser)

    async def exists_user_by_id(self, user_id: int, context: RequestContext) -> bool:
        return await self.exists("GET", f"/auth/users/{user_id}", context)

    async def delete_user(self, user_id: int, context: RequestContext, *, hard: bool = False) -> bool:
        """
        사용자를 삭제합니다. hard=False 는 비활성화(소프트 삭제), hard=True 는 행 삭제입니다.
        멱등 호출입니다: 이미 없는 사용자(404)는 성공으로 보고 False 를 반환합니다.
        """
        response = await self.request("DELETE", f"/auth/users/{user_id}", context, params={"hard": hard})
        if response.status_code == 404:
            return False
        self.raise_for_error(response)
        return True

    async def has_active_users_in_center(self, center_id: int, context: RequestContext) -> bool:
        return await self.exists("HEAD", f"/auth/users/by-center/{center_id}/exists", context)
