# app/core/context.py

"""
요청 신원(identity) 컨텍스트를 정의하는 모듈입니다.

게이트웨이가 설정한 신뢰 헤더(X-User-Id, X-Roles, X-Center-Id)와 추적 ID(X-Trace-Id)를
RequestContext 객체로 묶어, 서비스 계층과 원격 클라이언트에 명시적인 인자로 전달합니다.
스레드/태스크 로컬 전역 상태에 의존하지 않습니다.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from fastapi import Request

USER_ID_HEADER = "X-User-Id"
ROLES_HEADER = "X-Roles"
CENTER_ID_HEADER = "X-Center-Id"
TRACE_ID_HEADER = "X-Trace-Id"

IDENTITY_HEADERS = (USER_ID_HEADER, ROLES_HEADER, CENTER_ID_HEADER)


def parse_roles(header_value: Optional[str]) -> FrozenSet[str]:
    """
    쉼표로 구분된 역할 헤더를 정규화된 역할 집합으로 변환합니다.
    공백은 제거하고, 빈 항목은 버리며, 대문자로 비교합니다.
    """
    if not header_value:
        return frozenset()
    return frozenset(part.strip().upper() for part in header_value.split(",") if part.strip())


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class RequestContext:
    """한 요청의 호출자 신원. 원격 호출 시 헤더로 그대로 전달됩니다."""
    user_id: Optional[int] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    center_id: Optional[int] = None
    trace_id: Optional[str] = None

    def has_role(self, role: str) -> bool:
        return role.upper() in self.roles

    def forward_headers(self) -> Dict[str, str]:
        """원격 서비스 호출에 실어 보낼 헤더를 만듭니다."""
        headers: Dict[str, str] = {}
        if self.user_id is not None:
            headers[USER_ID_HEADER] = str(self.user_id)
        if self.roles:
            headers[ROLES_HEADER] = ",".join(sorted(self.roles))
        if self.center_id is not None:
            headers[CENTER_ID_HEADER] = str(self.center_id)
        if self.trace_id:
            headers[TRACE_ID_HEADER] = self.trace_id
        return headers

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        headers = request.headers
        trace_id = getattr(request.state, "trace_id", None) or headers.get(TRACE_ID_HEADER)
        return cls(
            user_id=_parse_int(headers.get(USER_ID_HEADER)),
            roles=parse_roles(headers.get(ROLES_HEADER)),
            center_id=_parse_int(headers.get(CENTER_ID_HEADER)),
            trace_id=trace_id,
        )
