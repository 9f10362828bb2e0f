# app/clients/consulting_client.py

"""
consulting 서비스 클라이언트입니다. admin 서비스의 삭제 검사(의사, 의료센터)에서 사용합니다.
"""

from app.clients.base import RemoteServiceClient
from app.core.context import RequestContext


class ConsultingClient(RemoteServiceClient):
    service_name = "consulting"

    async def has_future_appointments(self, doctor_id: int, context: RequestContext) -> bool:
        return await self.exists(
            "GET", f"/consulting/medical-consultations/doctor-has-future-consultations/{doctor_id}", context
        )

    async def has_active_appointments_in_center(self, center_id: int, context: RequestContext) -> bool:
        return await self.exists(
            "GET", f"/consulting/medical-consultations/center-has-consultations/{center_id}", context
        )

    async def has_active_patients_in_center(self, center_id: int, context: RequestContext) -> bool:
        return await self.exists("GET", f"/consulting/patients/center-has-patients/{center_id}", context)
