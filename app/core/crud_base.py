# app/core/crud_base.py

"""
공통 CRUD(Create, Read, Update, Delete) 작업을 위한 기본 클래스 모듈입니다.
모든 메서드는 비동기(async) 환경에 맞게 작성되었습니다.

- 조회 메서드는 기본적으로 '활성(active)' 행만 반환합니다.
  삭제된 행까지 포함하는 조회는 *_including_deleted 로 이름을 구분합니다.
- 갱신은 버전 비교 기반의 낙관적 갱신(update_optimistic)과
  잠금 후 갱신(lock_by_id + apply_locked_update) 두 가지를 제공합니다.
- 소프트 삭제는 행을 지우지 않고 삭제 플래그만 바꿉니다.
"""

import logging
from typing import Generic, List, Optional, Type, TypeVar, Any, Dict
from datetime import datetime, UTC

from sqlalchemy import func, update as sa_update
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from pydantic import BaseModel

from app.core import exceptions as exc

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    모든 CRUD 작업에 대한 기본 클래스를 정의합니다.

    soft_delete_field / active_value 로 소프트 삭제 컬럼과 '활성' 값을 지정합니다.
    (대부분의 엔티티는 deleted=False 가 활성이고, User 는 enabled=True 가 활성입니다.)
    """
    soft_delete_field: str = "deleted"
    active_value: Any = False
    not_found_message: str = "Resource not found."
    conflict_message: str = "The resource was modified by another process."

    def __init__(self, model: Type[ModelType]):
        self.model = model

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------
    def _active_clause(self):
        return getattr(self.model, self.soft_delete_field) == self.active_value

    def _deleted_value(self) -> Any:
        return not self.active_value

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        ID를 기준으로 활성 레코드를 조회합니다.
        """
        statement = select(self.model).where(self.model.id == id, self._active_clause())
        result = await db.execute(statement)
        return result.scalars().first()

    async def get_including_deleted(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        삭제 여부와 관계없이 ID로 레코드를 조회합니다.
        """
        return await db.get(self.model, id)

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100, **kwargs: Any
    ) -> List[ModelType]:
        """
        활성 레코드를 여러 개 조회합니다. 필터링을 위한 키워드 인자를 지원합니다.
        """
        query = select(self.model).where(self._active_clause())
        for field, value in kwargs.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        query = query.order_by(self.model.id).offset(skip).limit(limit)

        result = await db.execute(query)
        return result.scalars().all()

    async def get_multi_including_deleted(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100
    ) -> List[ModelType]:
        query = select(self.model).order_by(self.model.id).offset(skip).limit(limit)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_ids(
        self, db: AsyncSession, *, ids: List[int], include_deleted: bool = False
    ) -> List[ModelType]:
        if not ids:
            return []
        query = select(self.model).where(self.model.id.in_(ids))
        if not include_deleted:
            query = query.where(self._active_clause())
        result = await db.execute(query.order_by(self.model.id))
        return result.scalars().all()

    async def get_by_attribute(
        self, db: AsyncSession, *, attribute: str, value: Any
    ) -> Optional[ModelType]:
        statement = select(self.model).where(getattr(self.model, attribute) == value, self._active_clause())
        response = await db.execute(statement)
        return response.scalars().first()

    async def count(self, db: AsyncSession, **kwargs: Any) -> int:
        """
        조건에 맞는 활성 레코드 수를 반환합니다.
        """
        query = select(func.count()).select_from(self.model).where(self._active_clause())
        for field, value in kwargs.items():
            query = query.where(getattr(self.model, field) == value)
        result = await db.execute(query)
        return result.scalar_one()

    # -------------------------------------------------------------------------
    # 생성
    # -------------------------------------------------------------------------
    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType) -> ModelType:
        """
        새로운 레코드를 생성합니다. 생성은 잠금을 사용하지 않으며 버전은 0 에서 시작합니다.
        """
        db_obj = self.model.model_validate(obj_in)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    # -------------------------------------------------------------------------
    # 낙관적 갱신
    # -------------------------------------------------------------------------
    async def update_optimistic(
        self,
        db: AsyncSession,
        *,
        id: Any,
        values: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ModelType:
        """
        버전 비교 후 교체 방식으로 레코드를 갱신하고 커밋합니다.

        UPDATE ... WHERE id = :id AND version = :expected AND <활성> 이 0 행이면
        다른 요청이 먼저 갱신했거나 삭제한 것이므로 ConflictError 를 발생시킵니다.
        expected_version 이 없으면 방금 읽은 버전을 기대값으로 사용합니다.
        """
        current = await self.get(db, id)
        if current is None:
            raise exc.NotFoundError(self.not_found_message)

        version = current.version if expected_version is None else expected_version
        statement = (
            sa_update(self.model)
            .where(self.model.id == id, self.model.version == version, self._active_clause())
            .values(**values, version=self.model.version + 1, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(statement)
        if result.rowcount == 0:
            await db.rollback()
            logger.info("optimistic update rejected: %s id=%s expected_version=%s", self.model.__name__, id, version)
            raise exc.ConflictError(self.conflict_message)

        await db.commit()
        await db.refresh(current)
        return current

    # -------------------------------------------------------------------------
    # 비관적 잠금
    # -------------------------------------------------------------------------
    async def lock_by_id(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        활성 레코드를 SELECT ... FOR UPDATE 로 잠그고 반환합니다.
        잠금은 호출자가 커밋하거나 롤백할 때까지 유지됩니다.
        """
        statement = (
            select(self.model)
            .where(self.model.id == id, self._active_clause())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalars().first()

    async def apply_locked_update(
        self, db: AsyncSession, *, db_obj: ModelType, values: Dict[str, Any]
    ) -> ModelType:
        """
        잠금을 보유한 레코드에 변경을 적용하고 버전을 1 증가시킵니다 (커밋하지 않음).
        """
        for key, value in values.items():
            setattr(db_obj, key, value)
        db_obj.version = db_obj.version + 1
        db_obj.updated_at = datetime.now(UTC)
        db.add(db_obj)
        await db.flush()
        return db_obj

    async def soft_delete_locked(self, db: AsyncSession, *, db_obj: ModelType) -> ModelType:
        """
        잠금을 보유한 레코드를 소프트 삭제합니다 (커밋하지 않음).
        """
        setattr(db_obj, self.soft_delete_field, self._deleted_value())
        if hasattr(db_obj, "version"):
            db_obj.version = db_obj.version + 1
        db_obj.updated_at = datetime.now(UTC)
        db.add(db_obj)
        await db.flush()
        return db_obj
