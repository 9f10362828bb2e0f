# app/__init__.py

"""
병원 관리(Hospital Management) FastAPI 애플리케이션의 메인 패키지입니다.

이 패키지는 공통 설정, 데이터베이스 연결, 보안, 원격 서비스 호출을 담는 core/clients
서브패키지와 각 서비스(admin, auth, consulting)를 대표하는 domains 서브패키지,
그리고 JWT 를 신뢰 헤더로 변환하는 gateway 서브패키지로 구성됩니다.
"""

APP_NAME = "Hospital Management API"
APP_VERSION = "0.1.0"
API_PREFIX = ""  # 원격 서비스 간 경로(/admin, /auth, /consulting)를 그대로 유지합니다.

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Hospital management backend: admin, auth and consulting services."
__author__ = "Hospital Platform Team"
__license__ = "MIT"
__all__ = []
