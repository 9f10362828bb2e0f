# app/core/tasks.py

import logging

from sqlmodel import select
from app.core.database import get_async_session_context

logger = logging.getLogger(__name__)


async def health_check_database_task(ctx):
    """
    ARQ 워커에 의해 실행될 주기적인 데이터베이스 헬스 체크 태스크.
    데이터베이스 연결 상태를 확인하고 로그를 남깁니다.
    """
    logger.info("arq task: database health check")

    try:
        async with get_async_session_context() as db:
            result = await db.execute(select(1))
            if result.scalar_one_or_none() == 1:
                logger.info("database health check: ok")
                return {"status": "success", "message": "Database connection successful."}
            error_msg = "Database health check failed: No result from test query."
            logger.error("database health check: %s", error_msg)
            return {"status": "failed", "message": error_msg}
    except Exception as e:
        # 워커가 중단되지 않도록 결과로 실패를 보고합니다.
        logger.exception("database health check: connection error")
        return {"status": "failed", "message": f"Database connection error: {e}"}
