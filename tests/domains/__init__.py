# tests/domains/__init__.py

"""
서비스(도메인)별 통합 테스트 패키지입니다.

- `test_admin_n.py`: 의료센터, 진료과 (동시성 제어, 삭제 전 의존 데이터 확인).
- `test_auth_n.py`: 사용자 등록, 로그인, 비밀번호 변경/재설정.
- `test_consulting_n.py`: 환자, 진료.
- `test_doctor_saga_n.py`: 의사 등록 사가와 보상, 의사 삭제.
"""

__title__ = "Hospital Domain Tests"
__description__ = "Integration tests for the admin, auth and consulting services."
__version__ = "0.1.0"
__all__ = []
