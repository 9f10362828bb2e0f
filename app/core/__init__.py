# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 데이터베이스 연결, 세션 관리 (SQLModel 및 AsyncSQLAlchemy).
- `crud_base.py`: 소프트 삭제/버전 관리를 포함한 공통 CRUD 클래스.
- `concurrency.py`: 낙관적/비관적 잠금 모드 정의.
- `context.py`: 요청 신원 컨텍스트 (X-User-Id, X-Roles, X-Center-Id).
- `exceptions.py`: 서비스 오류 분류 체계와 FastAPI 예외 핸들러.
- `logging_utils.py`: JSON 구조화 로깅과 추적 ID 전파.
- `saga.py`: 원격/로컬 단계로 구성된 쓰기 작업의 상태 기계.
- `security.py`: 비밀번호 해싱, JWT, 역할 기반 권한 부여 의존성.
- `validation.py`: 고유성/존재 여부 검사 헬퍼.
"""

__title__ = "Hospital Core"
__description__ = "Core components for the hospital management services."
__version__ = "0.1.0"
__all__ = []
