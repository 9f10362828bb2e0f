# app/gateway/__init__.py

"""
게이트웨이 패키지입니다. JWT 검증, 신뢰 헤더 주입, 추적 ID 전파를 담당하는 미들웨어를 제공합니다.
"""

from app.gateway.middleware import GatewayAuthMiddleware, RequestContextMiddleware, PUBLIC_PATHS

__all__ = ["GatewayAuthMiddleware", "RequestContextMiddleware", "PUBLIC_PATHS"]
