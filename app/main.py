# app/main.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager
from arq.connections import create_pool, RedisSettings

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

# 핵심 설정 및 데이터베이스 모듈 임포트
from app.core.config import settings
from app.core.database import create_db_and_tables, engine, get_session
from app.core.exceptions import InternalServerError, register_exception_handlers
from app.core.logging_utils import configure_logging
from app.clients import close_clients
from app.gateway import GatewayAuthMiddleware, RequestContextMiddleware

from app import API_PREFIX

# 태스크 모듈 임포트
from app.core import tasks as core_tasks
from app.domains.auth import tasks as auth_tasks

# 각 서비스(도메인)의 라우터
from app.domains.admin.routers import router as admin_router
from app.domains.auth.routers import router as auth_router
from app.domains.consulting.routers import router as consulting_router

configure_logging(settings.LOG_LEVEL, service=settings.APP_NAME, json_output=settings.LOG_JSON)
logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    auth_tasks.purge_stale_verification_tokens_task,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    jobs = [
        {
            'name': 'daily_db_health_check',
            'function': 'app.core.tasks.health_check_database_task',
            'cron': '0 0 * * *',
            'timeout': 300,
            'keep_result': 600,
        },
        {
            'name': 'hourly_verification_token_purge',
            'function': 'app.domains.auth.tasks.purge_stale_verification_tokens_task',
            'cron': '0 * * * *',  # 매시 정각
            'timeout': 300,
            'keep_result': 600,
        },
    ]


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기 이벤트(ARQ Redis, 원격 클라이언트, 데이터베이스)를 처리합니다.
    """
    logger.info("application starting: domains=%s gateway=%s", settings.ENABLED_DOMAINS, settings.GATEWAY_ENABLED)
    app.state.redis = None
    if settings.AUTO_CREATE_TABLES:
        await create_db_and_tables()
    if settings.TASK_QUEUE_ENABLED:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("arq redis pool created")

    yield  # 애플리케이션 실행

    logger.info("application shutting down")
    try:
        if app.state.redis:
            await app.state.redis.close()
        await close_clients()
        await engine.dispose()
    except Exception:
        logger.exception("error during shutdown")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

register_exception_handlers(app)

# -- 미들웨어 --
# 마지막에 추가한 미들웨어가 가장 바깥에서 실행됩니다 (CORS -> 추적 ID -> 게이트웨이 순).
if settings.GATEWAY_ENABLED:
    app.add_middleware(GatewayAuthMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 운영 환경에서는 프론트엔드 도메인으로 제한합니다.
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- 서비스 라우터 포함 --
# ENABLED_DOMAINS 로 한 프로세스에서 어떤 서비스를 제공할지 선택합니다.
_routers = {
    "admin": (admin_router, "Admin (의료센터, 진료과, 의사 관리)"),
    "auth": (auth_router, "Auth (사용자 및 인증 관리)"),
    "consulting": (consulting_router, "Consulting (환자 및 진료 관리)"),
}
for _domain in settings.ENABLED_DOMAINS:
    _router, _tag = _routers[_domain]
    app.include_router(_router, prefix=f"{API_PREFIX}/{_domain}", tags=[_tag])


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful", "domains": settings.ENABLED_DOMAINS}
    except Exception as e:
        logger.exception("health check failed")
        raise InternalServerError(f"Database connection error during health check: {e}")
    raise InternalServerError("Database health check failed: No result from test query")


# -- Uvicorn 서버 직접 실행 (개발용) --
# if __name__ == "__main__":
#     import uvicorn
#     uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
