# app/core/validation.py

"""
쓰기 작업 시작 시 명시적으로 호출하는 검증 헬퍼 모듈입니다.

- check_unique: 활성 행들 사이에서 값이 고유한지 확인합니다 (갱신 시 자기 자신 제외).
- check_exists: 활성 행 중 값이 존재하는지 확인합니다.
- is_valid_ecuadorian_dni: 에콰도르 주민번호(cédula) 검증 숫자를 확인합니다.
"""

from typing import Any, Optional, Type

from sqlalchemy import func
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession


def _active_clause(model: Type[SQLModel]):
    if hasattr(model, "deleted"):
        return model.deleted == False  # noqa: E712
    if hasattr(model, "enabled"):
        return model.enabled == True  # noqa: E712
    return None


async def check_unique(
    db: AsyncSession,
    model: Type[SQLModel],
    field: str,
    value: Any,
    exclude_id: Optional[int] = None,
    *,
    ignore_case: bool = True,
) -> bool:
    """
    활성 행 중 field == value 인 다른 행이 없으면 True 를 반환합니다.
    """
    column = getattr(model, field)
    if ignore_case and isinstance(value, str):
        condition = func.lower(column) == value.lower()
    else:
        condition = column == value

    statement = select(model.id).where(condition)
    active = _active_clause(model)
    if active is not None:
        statement = statement.where(active)
    if exclude_id is not None:
        statement = statement.where(model.id != exclude_id)

    result = await db.execute(statement.limit(1))
    return result.first() is None


async def check_exists(db: AsyncSession, model: Type[SQLModel], field: str, value: Any) -> bool:
    """
    활성 행 중 field == value 인 행이 있으면 True 를 반환합니다.
    """
    statement = select(model.id).where(getattr(model, field) == value)
    active = _active_clause(model)
    if active is not None:
        statement = statement.where(active)
    result = await db.execute(statement.limit(1))
    return result.first() is not None


# =============================================================================
# 에콰도르 주민번호 (cédula)
# =============================================================================
_DNI_COEFFICIENTS = (2, 1, 2, 1, 2, 1, 2, 1, 2)


def is_valid_ecuadorian_dni(dni: Optional[str]) -> bool:
    """
    10자리 숫자, 지역 코드(앞 두 자리) 1~24, 세 번째 자리 5 이하,
    그리고 모듈로 10 검증 숫자가 맞아야 유효합니다.
    """
    if dni is None or len(dni) != 10 or not dni.isdigit():
        return False

    province = int(dni[:2])
    if province < 1 or province > 24:
        return False
    if int(dni[2]) > 5:
        return False

    total = 0
    for digit, coefficient in zip(dni[:9], _DNI_COEFFICIENTS):
        product = int(digit) * coefficient
        if product >= 10:
            product -= 9
        total += product

    check_digit = (10 - total % 10) % 10
    return check_digit == int(dni[9])
