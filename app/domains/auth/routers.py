# app/domains/auth/routers.py

"""
'auth' 도메인 (사용자, 인증, 비밀번호 재설정)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
로그인과 비밀번호 재설정은 공개 엔드포인트이며, 나머지는 역할 검사를 거칩니다.
"""

from typing import List
from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core import exceptions as exc
from app.core.config import settings
from app.core.security import create_access_token

from . import crud as auth_crud
from . import schemas as auth_schemas
from . import services as auth_services


router = APIRouter(
    tags=["Auth (사용자 및 인증 관리)"],
    responses={404: {"description": "Not found"}},
)

require_admin = deps.require_any("ADMIN")
require_staff = deps.require_any("ADMIN", "DOCTOR")


# =============================================================================
# 1. 인증 (Authentication) 엔드포인트
# =============================================================================
@router.post("/login", response_model=auth_schemas.Token, summary="Access Token 획득")
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(deps.get_session),
):
    user = await auth_crud.user.authenticate(db, identifier=form_data.username, password=form_data.password)
    if not user:
        raise exc.UnauthorizedError("Incorrect username or password")

    claims = {
        "sub": user.username,
        "userId": user.id,
        "roles": sorted(role.name for role in user.roles),
        "centerId": user.center_id,
    }
    access_token = create_access_token(
        data=claims, expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/request-reset", status_code=status.HTTP_202_ACCEPTED, summary="비밀번호 재설정 요청")
async def request_password_reset(
    request_in: auth_schemas.PasswordResetRequest,
    service: auth_services.PasswordResetService = Depends(auth_services.get_password_reset_service),
):
    await service.request_password_reset(request_in.username_or_email)
    return {"message": "If the account exists, a reset link has been sent."}


@router.post("/reset-password", summary="토큰으로 비밀번호 재설정")
async def reset_password(
    reset_in: auth_schemas.PasswordReset,
    service: auth_services.PasswordResetService = Depends(auth_services.get_password_reset_service),
):
    await service.reset_password(reset_in.token, reset_in.new_password)
    return {"message": "Password updated."}


# =============================================================================
# 2. 사용자 (User) 엔드포인트
# =============================================================================
@router.post("/register", response_model=auth_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="새 사용자 등록")
async def register_user(
    user_in: auth_schemas.UserCreate,
    ctx: deps.RequestContext = Depends(require_admin),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    return await service.register(user_in, ctx)


@router.get("/users", response_model=List[auth_schemas.UserReadWithCenter], summary="사용자 목록 (호출자 제외)")
async def read_users(
    include_disabled: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_admin),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    return await service.list_users(ctx, include_disabled=include_disabled, skip=skip, limit=limit)


@router.get("/users/me", response_model=auth_schemas.UserRead, summary="현재 사용자 정보 조회")
async def read_user_me(
    ctx: deps.RequestContext = Depends(require_staff),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    if ctx.user_id is None:
        raise exc.UnauthorizedError("Missing X-User-Id")
    return await service.get_user(ctx.user_id)


@router.get("/users/by-center/{center_id}", response_model=List[auth_schemas.UserRead], summary="의료센터별 사용자 목록")
async def read_users_by_center(
    center_id: int,
    include_disabled: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    ctx: deps.RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(deps.get_session),
):
    return await auth_crud.user.get_multi_by_center(
        db, center_id=center_id, include_disabled=include_disabled, skip=skip, limit=limit
    )


@router.head("/users/by-center/{center_id}/exists", summary="의료센터에 사용자가 있는지 확인 (204/404)")
async def exists_users_by_center(
    center_id: int,
    include_disabled: bool = Query(False),
    ctx: deps.RequestContext = Depends(require_staff),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    if await service.exists_by_center(center_id, include_disabled=include_disabled):
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(status_code=status.HTTP_404_NOT_FOUND)


@router.get("/users/{user_id}", response_model=auth_schemas.UserRead, summary="특정 사용자 조회")
async def read_user(
    user_id: int,
    include_disabled: bool = Query(False),
    ctx: deps.RequestContext = Depends(require_staff),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    return await service.get_user(user_id, include_disabled=include_disabled)


@router.put("/users/{user_id}", response_model=auth_schemas.UserRead, summary="사용자 정보 수정")
async def update_user(
    user_id: int,
    user_in: auth_schemas.UserUpdate,
    ctx: deps.RequestContext = Depends(require_admin),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    return await service.update(user_id, user_in, ctx)


@router.put("/users/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT, summary="비밀번호 변경")
async def update_user_password(
    user_id: int,
    password_in: auth_schemas.PasswordUpdate,
    ctx: deps.RequestContext = Depends(require_staff),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    # 관리자가 아니면 자신의 비밀번호만 변경할 수 있습니다.
    if not ctx.has_role("ADMIN") and ctx.user_id != user_id:
        raise exc.ForbiddenError("Only administrators can change another user's password.")
    await service.update_password(user_id, password_in.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="사용자 삭제 (기본: 비활성화)")
async def delete_user(
    user_id: int,
    hard: bool = Query(False, description="True 이면 행을 물리 삭제합니다"),
    ctx: deps.RequestContext = Depends(require_admin),
    service: auth_services.UserService = Depends(auth_services.get_user_service),
):
    await service.delete_user(user_id, hard=hard)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
