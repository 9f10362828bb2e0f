# app/gateway/middleware.py

"""
게이트웨이 미들웨어 모듈입니다.

- RequestContextMiddleware: 요청마다 추적 ID(X-Trace-Id)를 정하고 로그 컨텍스트에 바인딩합니다.
- GatewayAuthMiddleware: Bearer 토큰을 검증하고, 토큰 클레임을 신뢰 헤더
  (X-User-Id, X-Roles, X-Center-Id)로 변환하여 하위 서비스에 전달합니다.
  클라이언트가 직접 보낸 신원 헤더는 항상 제거됩니다.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core import exceptions as exc
from app.core.context import CENTER_ID_HEADER, IDENTITY_HEADERS, ROLES_HEADER, TRACE_ID_HEADER, USER_ID_HEADER
from app.core.logging_utils import bind_trace_id, reset_trace_id
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)

PUBLIC_PATHS = (
    "/",
    "/health-check",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/auth/login",
    "/auth/request-reset",
    "/auth/reset-password",
)

_STRIPPED_HEADERS = {name.lower().encode("latin-1") for name in IDENTITY_HEADERS}


# =============================================================================
# 1. 추적 ID 미들웨어
# =============================================================================
class RequestContextMiddleware(BaseHTTPMiddleware):
    """요청의 추적 ID 를 로그 컨텍스트와 request.state 에 설정하고 응답 헤더로 돌려줍니다."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        trace_id = request.headers.get(TRACE_ID_HEADER) or uuid.uuid4().hex
        request.state.trace_id = trace_id
        token = bind_trace_id(trace_id)
        try:
            response = await call_next(request)
        finally:
            reset_trace_id(token)

        response.headers[TRACE_ID_HEADER] = trace_id
        return response


# =============================================================================
# 2. 인증 게이트웨이 미들웨어
# =============================================================================
def _is_public(path: str, public_paths: Iterable[str]) -> bool:
    return path in public_paths or path.startswith("/docs/")


def _identity_headers(claims: dict) -> List[Tuple[bytes, bytes]]:
    headers: List[Tuple[bytes, bytes]] = []
    user_id = claims.get("userId")
    if user_id is not None:
        headers.append((USER_ID_HEADER.lower().encode("latin-1"), str(user_id).encode("latin-1")))
    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if roles:
        headers.append((ROLES_HEADER.lower().encode("latin-1"), ",".join(roles).encode("latin-1")))
    center_id = claims.get("centerId")
    if center_id is not None:
        headers.append((CENTER_ID_HEADER.lower().encode("latin-1"), str(center_id).encode("latin-1")))
    return headers


def _bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class GatewayAuthMiddleware(BaseHTTPMiddleware):
    """
    JWT 를 검증하여 신뢰 헤더로 변환합니다.

    공개 경로는 토큰 없이 통과하지만 신원 헤더는 제거됩니다.
    그 밖의 경로에서 토큰이 없거나 유효하지 않으면 401 을 반환합니다.
    """

    def __init__(self, app: FastAPI, public_paths: Iterable[str] = PUBLIC_PATHS) -> None:  # type: ignore[override]
        super().__init__(app)
        self.public_paths = tuple(public_paths)

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        headers = [(k, v) for k, v in request.scope["headers"] if k.lower() not in _STRIPPED_HEADERS]

        if request.method != "OPTIONS" and not _is_public(request.url.path, self.public_paths):
            token = _bearer_token(request)
            if token is None:
                return self._unauthorized(exc.UnauthorizedError("Missing bearer token"))
            try:
                claims = decode_access_token(token)
            except exc.UnauthorizedError as e:
                return self._unauthorized(e)
            headers.extend(_identity_headers(claims))

        request.scope["headers"] = headers
        return await call_next(request)

    @staticmethod
    def _unauthorized(error: exc.UnauthorizedError) -> JSONResponse:
        logger.info("gateway rejected request: %s", error.detail)
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_body(),
            headers={"WWW-Authenticate": "Bearer"},
        )
