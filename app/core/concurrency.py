# app/core/concurrency.py

"""
엔티티 갱신 시 사용할 동시성 제어 모드를 정의합니다.

- OPTIMISTIC: 버전 비교 후 교체(compare-and-swap). 버전이 다르면 ConflictError.
- PESSIMISTIC: SELECT ... FOR UPDATE 로 행을 잠근 뒤 트랜잭션 종료까지 유지.

생성(create)은 잠금을 사용하지 않으며, 소프트 삭제는 항상 비관적 잠금을 사용합니다.
"""

from enum import Enum


class LockMode(str, Enum):
    OPTIMISTIC = "optimistic"
    PESSIMISTIC = "pessimistic"
