# usermgmt/services/token_cleanup.py
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.models.base import utcnow
from usermgmt.repositories.tokens import TokenRepository


async def cleanup_expired_tokens(db: AsyncSession, retention_days: int) -> int:
    """刪除 refresh 過期超過 retention_days 的 TokenPair，回傳刪除數量。"""
    cutoff = utcnow() - timedelta(days=retention_days)
    return await TokenRepository(db).purge_expired(cutoff)
