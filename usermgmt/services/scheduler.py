# usermgmt/services/scheduler.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from fastapi import FastAPI

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from usermgmt.core.config import settings
from usermgmt.db.session import AsyncSessionLocal
from usermgmt.services.rate_limit import close_redis
from usermgmt.services.token_cleanup import cleanup_expired_tokens

logger = logging.getLogger(__name__)

scheduler: Optional[AsyncIOScheduler] = None


@asynccontextmanager
async def lifespan_scheduler(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan：啟動 / 關閉 APScheduler（過期 token 清理）。
    """
    global scheduler
    if settings.TOKEN_CLEANUP_ENABLED:
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            run_cleanup_job,
            IntervalTrigger(minutes=settings.TOKEN_CLEANUP_INTERVAL_MINUTES),
        )
        scheduler.start()
        logger.info(
            "APScheduler started: token cleanup every %d minutes",
            settings.TOKEN_CLEANUP_INTERVAL_MINUTES,
        )
    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)
            scheduler = None
            logger.info("APScheduler shutdown")
        await close_redis()


async def run_cleanup_job() -> int:
    """排程作業：建立一次性 DB session 來清理過期 token。"""
    async with AsyncSessionLocal() as db:
        try:
            deleted = await cleanup_expired_tokens(db, settings.TOKEN_RETENTION_DAYS)
        except Exception:
            logger.exception("Token cleanup failed")
            await db.rollback()
            return 0
    logger.info("Token cleanup done: deleted=%d", deleted)
    return deleted
