# app/core/security.py

"""
애플리케이션의 보안 관련 유틸리티 함수 및 의존성 주입을 정의하는 모듈입니다.

- 비밀번호 해싱 및 검증.
- JWT(JSON Web Token) 생성 및 검증 (로그인, 게이트웨이).
- X-Roles 헤더 기반 역할 권한 부여 의존성 (ANY / ALL 정책).

전제 조건: 역할 검사는 X-Roles 헤더를 신뢰합니다. 헤더의 진위 검증은
게이트웨이(app.gateway)의 책임이며, 외부에서 서비스에 직접 접근할 수 없어야 합니다.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request
from jose import jwt, JWTError
from passlib.context import CryptContext  # 비밀번호 해싱을 위한 라이브러리

from app.core import exceptions as exc
from app.core.config import settings
from app.core.context import IDENTITY_HEADERS, ROLES_HEADER, RequestContext, parse_roles

logger = logging.getLogger(__name__)

# --- 비밀번호 해싱 설정 ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    일반 텍스트 비밀번호와 해싱된 비밀번호를 비교하여 일치하는지 확인합니다.
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    주어진 비밀번호를 해싱합니다.
    """
    return pwd_context.hash(password)


# --- JWT 토큰 생성 및 검증 ---
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Access Token을 생성합니다.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    토큰의 서명과 만료 시간을 검증하고 클레임을 반환합니다.
    검증에 실패하면 UnauthorizedError 를 발생시킵니다.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info("token rejected: %s", e)
        raise exc.UnauthorizedError("Invalid or expired token")


# =============================================================================
# 역할 기반 권한 부여 의존성
# =============================================================================
class RoleMatch(str, Enum):
    ANY = "ANY"  # 나열된 역할 중 하나 이상
    ALL = "ALL"  # 나열된 역할 모두


class RequireRoles:
    """
    라우트 시그니처에 선언하는 역할 검사 의존성입니다.

    - X-Roles 헤더가 없으면 401 (핸들러는 실행되지 않습니다).
    - ANY: 교집합이 비어 있으면 403 "Required role: A OR B".
    - ALL: 하나라도 없으면 403 "Required roles: A AND B".

    통과하면 호출자의 RequestContext 를 반환합니다.
    """

    def __init__(self, *roles: str, match: RoleMatch = RoleMatch.ANY):
        if not roles:
            raise ValueError("at least one role is required")
        self.roles = tuple(role.strip().upper() for role in roles)
        self.match = match

    def __call__(self, request: Request) -> RequestContext:
        header = request.headers.get(ROLES_HEADER)
        if header is None:
            raise exc.UnauthorizedError(f"Missing {ROLES_HEADER}")

        caller_roles = parse_roles(header)
        if self.match is RoleMatch.ALL:
            allowed = all(role in caller_roles for role in self.roles)
            message = "Required roles: " + " AND ".join(self.roles)
        else:
            allowed = any(role in caller_roles for role in self.roles)
            message = "Required role: " + " OR ".join(self.roles)

        if not allowed:
            logger.info("role check failed: required=%s match=%s caller=%s", self.roles, self.match.value, sorted(caller_roles))
            raise exc.ForbiddenError(message)
        return RequestContext.from_request(request)


def require_any(*roles: str) -> RequireRoles:
    return RequireRoles(*roles, match=RoleMatch.ANY)


def require_all(*roles: str) -> RequireRoles:
    return RequireRoles(*roles, match=RoleMatch.ALL)


def require_identity_headers(request: Request) -> None:
    """
    X-User-Id, X-Roles, X-Center-Id 세 헤더가 모두 있어야 통과하는 라우터 단위 의존성입니다.
    """
    missing = [name for name in IDENTITY_HEADERS if not request.headers.get(name)]
    if missing:
        raise exc.UnauthorizedError("Missing identity headers: " + ", ".join(missing))


__all__ = [
    "RoleMatch",
    "RequireRoles",
    "require_any",
    "require_all",
    "require_identity_headers",
    "create_access_token",
    "decode_access_token",
    "get_password_hash",
    "verify_password",
]
