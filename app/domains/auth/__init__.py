# app/domains/auth/__init__.py

"""
FastAPI 애플리케이션의 'auth' 도메인 패키지입니다.

'auth' 도메인은 사용자(User), 역할(Role), 비밀번호 재설정 토큰(VerificationToken)을 관리하며
로그인 시 JWT 를 발급합니다. 사용자의 center_id 는 admin 서비스의 의료센터를
약한 참조로 가리키므로 등록/수정 시 원격으로 검증합니다.

사용자의 소프트 삭제는 enabled=False 로 표현됩니다 (다른 엔티티의 deleted 와 반대 극성).
물리 삭제(hard delete)는 의사 등록 사가의 보상 단계에서만 사용합니다.
"""

__title__ = "Hospital Auth Domain"
__description__ = "Manages users, roles, login and password reset."
__version__ = "0.1.0"
__all__ = []
