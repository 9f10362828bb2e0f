# app/domains/auth/tasks.py

import logging
from datetime import datetime, UTC

from app.core.database import get_async_session_context

from . import crud as auth_crud

logger = logging.getLogger(__name__)


async def purge_stale_verification_tokens_task(ctx):
    """
    ARQ 워커에 의해 실행될 만료/사용된 비밀번호 재설정 토큰 정리 태스크.
    """
    logger.info("arq task: purging stale verification tokens")

    async with get_async_session_context() as session:
        deleted_count = await auth_crud.verification_token.delete_stale(session, now=datetime.now(UTC))

    logger.info("purged %s stale verification tokens", deleted_count)
    return {"status": "success", "deleted_count": deleted_count}
