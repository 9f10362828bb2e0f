# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 한 곳에서 노출하는 모듈입니다.

- 데이터베이스 세션 (get_session).
- 요청 신원 컨텍스트 (RequestContext).
- 역할 기반 권한 부여 (require_any / require_all / require_identity_headers).
- 원격 서비스 클라이언트 (get_auth_client / get_admin_client / get_consulting_client).
"""

# flake8: noqa
from app.core.database import get_session
from app.core.context import RequestContext
from app.core.security import require_any, require_all, require_identity_headers
from app.clients import get_admin_client, get_auth_client, get_consulting_client
