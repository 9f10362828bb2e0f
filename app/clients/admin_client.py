# app/clients/admin_client.py

"""
admin 서비스 클라이언트입니다. auth/consulting 서비스가 의료센터와 의사의 존재를 확인할 때 사용합니다.
"""

import logging
from typing import List

from pydantic import ValidationError as PydanticValidationError

from app.clients.base import RemoteServiceClient
from app.clients.schemas import RemoteCenter
from app.core import exceptions as exc
from app.core.context import RequestContext

logger = logging.getLogger(__name__)


class AdminClient(RemoteServiceClient):
    service_name = "admin"

    async def validate_center_id(self, center_id: int, context: RequestContext) -> None:
        """
        의료센터가 존재하는지 확인합니다.
        없으면 NotFoundError, admin 서비스 장애(5xx)면 RemoteUnavailableError 입니다.
        """
        response = await self.request("GET", f"/admin/centers/validate/{center_id}", context)
        if response.is_success:
            return
        if response.status_code == 404:
            raise exc.NotFoundError(f"Center id {center_id} does not exist.")
        if response.status_code >= 500:
            raise exc.RemoteUnavailableError("Admin service is unavailable.")
        raise self.decode_error(response)

    async def get_centers_by_ids(
        self, ids: List[int], context: RequestContext, *, include_deleted: bool = False
    ) -> List[RemoteCenter]:
        """
        의료센터 목록을 일괄 조회합니다. admin 서비스를 사용할 수 없으면 빈 목록을 반환합니다.
        """
        if not ids:
            return []
        try:
            response = await self.request(
                "POST",
                "/admin/centers/batch",
                context,
                json={"ids": sorted(set(ids)), "include_deleted": include_deleted},
            )
        except exc.RemoteUnavailableError:
            logger.warning("admin service unavailable, center names omitted")
            return []
        self.raise_for_error(response)
        payload = self.parse_json(response)
        if not isinstance(payload, list):
            raise exc.BadGatewayError("Malformed response from admin service")
        try:
            return [RemoteCenter.model_validate(item) for item in payload]
        except PydanticValidationError:
            raise exc.BadGatewayError("Malformed response from admin service")

    async def exists_doctor_by_id(self, doctor_id: int, context: RequestContext) -> bool:
        return await self.exists("GET", f"/admin/doctors/validate/{doctor_id}", context)
