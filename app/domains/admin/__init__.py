# app/domains/admin/__init__.py

"""
FastAPI 애플리케이션의 'admin' 도메인 패키지입니다.

'admin' 도메인은 의료센터(MedicalCenter), 진료과(Specialty), 의사(Doctor)를 관리합니다.
의사는 auth 서비스의 사용자(User)를 약한 참조(user_id)로 가리키며,
의사 등록/삭제와 의료센터 삭제는 원격 서비스 호출을 포함하는 쓰기 작업(사가)으로 수행됩니다.

주요 서브모듈:
- `models.py`: 'admin' 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic 모델.
- `crud.py`: 비동기 CRUD 로직 (소프트 삭제, 버전 관리).
- `services.py`: 원격 검증과 보상 트랜잭션을 포함하는 쓰기 서비스.
- `routers.py`: '/admin' API 엔드포인트 정의.
"""

__title__ = "Hospital Admin Domain"
__description__ = "Manages medical centers, specialties and doctors."
__version__ = "0.1.0"
__all__ = []
