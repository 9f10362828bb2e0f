# app/domains/auth/services.py

"""
'auth' 도메인의 서비스 모듈입니다.

- UserService: 사용자 등록(중복/센터/역할 검증), 조회, 수정, 비밀번호 변경, 비활성화, 물리 삭제.
- PasswordResetService: 재설정 토큰 발급, 1회 사용, 만료 처리.
"""

import logging
import uuid
from datetime import datetime, timedelta, UTC
from typing import List, Optional

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.clients import AdminClient, get_admin_client
from app.core import exceptions as exc
from app.core.config import settings
from app.core.context import RequestContext
from app.core.database import get_session
from app.core.security import get_password_hash, verify_password

from . import crud as auth_crud
from . import models as auth_models
from . import schemas as auth_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. 사용자 서비스
# =============================================================================
class UserService:
    def __init__(self, db: AsyncSession, admin_client: AdminClient):
        self.db = db
        self.admin_client = admin_client

    async def _resolve_roles(self, names: List[str]) -> List[auth_models.Role]:
        roles = []
        for name in names:
            role = await auth_crud.role.get_by_name(self.db, name=name)
            if role is None:
                raise exc.NotFoundError(f"Role not found: {name}")
            roles.append(role)
        return roles

    async def register(self, obj_in: auth_schemas.UserCreate, ctx: RequestContext) -> auth_models.User:
        """
        사용자를 등록합니다. 사용자명(DNI)과 이메일은 비활성 사용자를 포함하여 고유해야 하며,
        center_id 는 admin 서비스에서 확인합니다.
        """
        if await auth_crud.user.get_by_username(self.db, username=obj_in.username):
            raise exc.ValidationError(
                "Invalid data", errors={"username": f"A user with DNI {obj_in.username} already exists."}
            )
        if obj_in.email and await auth_crud.user.get_by_email(self.db, email=obj_in.email):
            raise exc.ValidationError(
                "Invalid data", errors={"email": f"A user with email {obj_in.email} already exists."}
            )
        await self.admin_client.validate_center_id(obj_in.center_id, ctx)
        roles = await self._resolve_roles(obj_in.roles)

        db_user = auth_models.User(
            username=obj_in.username,
            password_hash=get_password_hash(obj_in.password),
            email=obj_in.email,
            gender=obj_in.gender.value,
            first_name=obj_in.first_name,
            last_name=obj_in.last_name,
            center_id=obj_in.center_id,
            roles=roles,
        )
        self.db.add(db_user)
        await self.db.commit()
        await self.db.refresh(db_user)
        logger.info("user %s registered with roles %s", db_user.id, obj_in.roles)
        return db_user

    async def get_user(self, user_id: int, *, include_disabled: bool = False) -> auth_models.User:
        if include_disabled:
            db_user = await auth_crud.user.get_including_deleted(self.db, user_id)
        else:
            db_user = await auth_crud.user.get(self.db, user_id)
        if db_user is None:
            raise exc.NotFoundError("User not found.")
        return db_user

    async def list_users(
        self,
        ctx: RequestContext,
        *,
        include_disabled: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[auth_schemas.UserReadWithCenter]:
        """
        호출자 자신을 제외한 사용자 목록에 의료센터명을 붙여 반환합니다.
        admin 서비스를 사용할 수 없으면 센터명은 "Unknown center" 로 표시됩니다.
        """
        users = await auth_crud.user.get_multi_excluding(
            self.db, exclude_id=ctx.user_id, include_disabled=include_disabled, skip=skip, limit=limit
        )
        centers = await self.admin_client.get_centers_by_ids(
            [u.center_id for u in users], ctx, include_deleted=True
        )
        names = {center.id: center.name for center in centers}
        result = []
        for db_user in users:
            read = auth_schemas.UserReadWithCenter.model_validate(db_user)
            read.center_name = names.get(db_user.center_id, "Unknown center")
            result.append(read)
        return result

    async def update(self, user_id: int, obj_in: auth_schemas.UserUpdate, ctx: RequestContext) -> auth_models.User:
        db_user = await self.get_user(user_id)
        update_data = obj_in.model_dump(exclude_unset=True)

        new_email = update_data.get("email")
        if new_email and new_email != db_user.email:
            other = await auth_crud.user.get_by_email(self.db, email=new_email)
            if other is not None and other.id != db_user.id:
                raise exc.ValidationError("Invalid data", errors={"email": f"A user with email {new_email} already exists."})
        new_center = update_data.get("center_id")
        if new_center is not None and new_center != db_user.center_id:
            await self.admin_client.validate_center_id(new_center, ctx)
        if update_data.get("gender") is not None:
            update_data["gender"] = auth_schemas.GenderType(update_data["gender"]).value

        for key, value in update_data.items():
            setattr(db_user, key, value)
        db_user.updated_at = datetime.now(UTC)
        self.db.add(db_user)
        await self.db.commit()
        return db_user

    async def update_password(self, user_id: int, new_password: str) -> None:
        db_user = await self.get_user(user_id)
        if verify_password(new_password, db_user.password_hash):
            raise exc.ValidationError(
                "Invalid data", errors={"new_password": "The new password must differ from the current one."}
            )
        db_user.password_hash = get_password_hash(new_password)
        db_user.updated_at = datetime.now(UTC)
        self.db.add(db_user)
        await self.db.commit()

    async def delete_user(self, user_id: int, *, hard: bool = False) -> None:
        """
        hard=False: 비활성화(소프트 삭제). 이미 비활성이면 NotFound.
        hard=True: 행 삭제. 비활성 사용자도 삭제할 수 있으며, 없으면 NotFound.
        """
        if hard:
            db_user = await auth_crud.user.get_including_deleted(self.db, user_id)
            if db_user is None:
                raise exc.NotFoundError("User not found.")
            await auth_crud.user.hard_delete(self.db, db_obj=db_user)
            logger.info("user %s hard-deleted", user_id)
            return

        try:
            db_user = await auth_crud.user.lock_by_id(self.db, user_id)
            if db_user is None:
                raise exc.NotFoundError("User not found.")
            await auth_crud.user.soft_delete_locked(self.db, db_obj=db_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("user %s disabled", user_id)

    async def exists_by_center(self, center_id: int, *, include_disabled: bool = False) -> bool:
        return await auth_crud.user.exists_by_center(self.db, center_id=center_id, include_disabled=include_disabled)


# =============================================================================
# 2. 비밀번호 재설정 서비스
# =============================================================================
def _as_aware(value: datetime) -> datetime:
    # SQLite 는 시간대 정보 없이 저장하므로 UTC 로 간주합니다.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class PasswordResetService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def create_token() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def is_usable(token: auth_models.VerificationToken, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(UTC)
        return not token.used and _as_aware(token.expiration) > now

    async def generate_for_user(self, user_id: int) -> auth_models.VerificationToken:
        token = auth_models.VerificationToken(
            user_id=user_id,
            token=self.create_token(),
            used=False,
            expiration=datetime.now(UTC) + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_MINUTES),
        )
        self.db.add(token)
        await self.db.commit()
        await self.db.refresh(token)
        return token

    async def request_password_reset(self, identifier: str) -> Optional[auth_models.VerificationToken]:
        """
        사용자명 또는 이메일로 사용자를 찾아 재설정 토큰을 발급합니다.
        사용자가 없으면 아무 것도 하지 않습니다 (계정 존재 여부를 노출하지 않습니다).
        메일 발송은 이 서비스의 범위 밖이며, 링크는 DEBUG 로그로만 남깁니다.
        """
        db_user = await auth_crud.user.get_by_username_or_email(self.db, identifier=identifier)
        if db_user is None:
            logger.info("password reset requested for unknown identifier")
            return None
        token = await self.generate_for_user(db_user.id)
        logger.info("password reset token issued for user %s", db_user.id)
        logger.debug("password reset link: %s/reset-password?token=%s", settings.FRONTEND_URL, token.token)
        return token

    async def mark_as_used(self, token: auth_models.VerificationToken) -> None:
        token.used = True
        self.db.add(token)
        await self.db.flush()

    async def reset_password(self, token_value: str, new_password: str) -> None:
        token = await auth_crud.verification_token.get_by_token(self.db, token=token_value)
        if token is None:
            raise exc.NotFoundError("Reset token not found.")
        if not self.is_usable(token):
            raise exc.ValidationError("Invalid data", errors={"token": "The token has expired or was already used."})

        db_user = await auth_crud.user.get(self.db, token.user_id)
        if db_user is None:
            raise exc.NotFoundError("User not found.")
        if verify_password(new_password, db_user.password_hash):
            raise exc.ValidationError(
                "Invalid data", errors={"new_password": "The new password must differ from the current one."}
            )
        await self.mark_as_used(token)
        db_user.password_hash = get_password_hash(new_password)
        db_user.updated_at = datetime.now(UTC)
        self.db.add(db_user)
        await self.db.commit()
        logger.info("password reset completed for user %s", db_user.id)


# =============================================================================
# 3. FastAPI 의존성
# =============================================================================
def get_user_service(
    db: AsyncSession = Depends(get_session),
    admin_client: AdminClient = Depends(get_admin_client),
) -> UserService:
    return UserService(db, admin_client)


def get_password_reset_service(db: AsyncSession = Depends(get_session)) -> PasswordResetService:
    return PasswordResetService(db)
