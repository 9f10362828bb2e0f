# app/domains/consulting/__init__.py

"""
FastAPI 애플리케이션의 'consulting' 도메인 패키지입니다.

'consulting' 도메인은 환자(Patient)와 진료 기록(MedicalConsultation)을 관리하며,
admin 서비스가 의사/의료센터를 삭제하기 전에 호출하는 의존 데이터 확인 엔드포인트를 제공합니다.
모든 라우트는 X-User-Id, X-Roles, X-Center-Id 세 헤더를 요구합니다.
"""

__title__ = "Hospital Consulting Domain"
__description__ = "Manages patients and medical consultations."
__version__ = "0.1.0"
__all__ = []
