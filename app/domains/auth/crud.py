# app/domains/auth/crud.py

"""
'auth' 도메인의 CRUD 작업을 담당하는 모듈입니다.
사용자는 enabled=True 가 활성 상태이며, 비활성 사용자를 포함하는 조회는 이름으로 구분합니다.
"""

from typing import List, Optional

from sqlalchemy import delete as sa_delete, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from app.core.security import verify_password
from . import models as auth_models
from . import schemas as auth_schemas


# =============================================================================
# 1. roles 테이블 CRUD
# =============================================================================
class CRUDRole:
    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[auth_models.Role]:
        result = await db.execute(select(auth_models.Role).where(auth_models.Role.name == name))
        return result.scalars().first()

    async def ensure(self, db: AsyncSession, *, names: List[str]) -> List[auth_models.Role]:
        """없는 역할은 만들고, 이름 순서대로 역할 목록을 반환합니다."""
        roles = []
        for name in names:
            role = await self.get_by_name(db, name=name)
            if role is None:
                role = auth_models.Role(name=name)
                db.add(role)
                await db.flush()
            roles.append(role)
        await db.commit()
        return roles


# =============================================================================
# 2. users 테이블 CRUD
# =============================================================================
class CRUDUser(CRUDBase[auth_models.User, auth_schemas.UserCreate, auth_schemas.UserUpdate]):
    soft_delete_field = "enabled"
    active_value = True
    not_found_message = "User not found."

    def __init__(self):
        super().__init__(model=auth_models.User)

    async def get_by_username(
        self, db: AsyncSession, *, username: str, include_disabled: bool = True
    ) -> Optional[auth_models.User]:
        statement = select(self.model).where(self.model.username == username)
        if not include_disabled:
            statement = statement.where(self._active_clause())
        result = await db.execute(statement)
        return result.scalars().first()

    async def get_by_email(
        self, db: AsyncSession, *, email: str, include_disabled: bool = True
    ) -> Optional[auth_models.User]:
        statement = select(self.model).where(self.model.email == email)
        if not include_disabled:
            statement = statement.where(self._active_clause())
        result = await db.execute(statement)
        return result.scalars().first()

    async def get_by_username_or_email(self, db: AsyncSession, *, identifier: str) -> Optional[auth_models.User]:
        statement = select(self.model).where(
            or_(self.model.username == identifier, self.model.email == identifier),
            self._active_clause(),
        )
        result = await db.execute(statement)
        return result.scalars().first()

    async def get_multi_by_center(
        self, db: AsyncSession, *, center_id: int, include_disabled: bool = False, skip: int = 0, limit: int = 100
    ) -> List[auth_models.User]:
        statement = select(self.model).where(self.model.center_id == center_id)
        if not include_disabled:
            statement = statement.where(self._active_clause())
        result = await db.execute(statement.order_by(self.model.id).offset(skip).limit(limit))
        return result.scalars().all()

    async def get_multi_excluding(
        self, db: AsyncSession, *, exclude_id: Optional[int], include_disabled: bool = False, skip: int = 0, limit: int = 100
    ) -> List[auth_models.User]:
        statement = select(self.model)
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        if not include_disabled:
            statement = statement.where(self._active_clause())
        result = await db.execute(statement.order_by(self.model.id).offset(skip).limit(limit))
        return result.scalars().all()

    async def exists_by_center(self, db: AsyncSession, *, center_id: int, include_disabled: bool = False) -> bool:
        statement = select(self.model.id).where(self.model.center_id == center_id)
        if not include_disabled:
            statement = statement.where(self._active_clause())
        result = await db.execute(statement.limit(1))
        return result.first() is not None

    async def authenticate(
        self, db: AsyncSession, *, identifier: str, password: str
    ) -> Optional[auth_models.User]:
        """
        사용자명 또는 이메일과 비밀번호로 활성 사용자를 인증합니다.
        """
        user = await self.get_by_username_or_email(db, identifier=identifier)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    async def hard_delete(self, db: AsyncSession, *, db_obj: auth_models.User) -> None:
        """
        사용자 행을 물리 삭제합니다. 사용자의 재설정 토큰도 함께 삭제합니다.
        """
        await db.execute(
            sa_delete(auth_models.VerificationToken).where(auth_models.VerificationToken.user_id == db_obj.id)
        )
        await db.delete(db_obj)
        await db.commit()


# =============================================================================
# 3. verification_tokens 테이블 CRUD
# =============================================================================
class CRUDVerificationToken:
    async def get_by_token(self, db: AsyncSession, *, token: str) -> Optional[auth_models.VerificationToken]:
        statement = select(auth_models.VerificationToken).where(auth_models.VerificationToken.token == token)
        result = await db.execute(statement)
        return result.scalars().first()

    async def delete_stale(self, db: AsyncSession, *, now) -> int:
        """만료되었거나 사용된 토큰을 삭제하고 삭제된 행 수를 반환합니다."""
        model = auth_models.VerificationToken
        result = await db.execute(sa_delete(model).where(or_(model.used == True, model.expiration < now)))  # noqa: E712
        return result.rowcount


role = CRUDRole()
user = CRUDUser()
verification_token = CRUDVerificationToken()
