# tests/__init__.py

"""
병원 관리 FastAPI 애플리케이션의 테스트 스위트 패키지입니다.

- `core/`: 역할 검사, 검증 헬퍼, 사가 상태 기계, 원격 클라이언트(재시도/회로 차단기) 단위 테스트.
- `domains/`: admin, auth, consulting 서비스의 API 통합 테스트와 서비스 간 흐름(의사 등록 사가, 삭제 검사).
- `test_main.py`, `test_gateway.py`: 애플리케이션 공통 엔드포인트와 게이트웨이 미들웨어.
- `conftest.py`: 테스트 DB, 의존성 교체, 루프백 원격 클라이언트, 신원 헤더 픽스처.
"""

__title__ = "Hospital API Tests"
__description__ = "Test suite for the hospital management FastAPI application."
__version__ = "0.1.0"
__all__ = []
