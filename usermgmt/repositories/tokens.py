# usermgmt/repositories/tokens.py
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.models.base import utcnow
from usermgmt.models.tokens import TokenPair

DEFAULT_ACCESS_TTL = timedelta(hours=1)
DEFAULT_REFRESH_TTL = timedelta(days=7)


class TokenRepository:
    """tokens 表的資料存取與撤銷規則（Token Store）。"""

    def __init__(
        self,
        db: AsyncSession,
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
    ):
        self.db = db
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue(self, access_token: str, refresh_token: str, user_id: str) -> TokenPair:
        """建立新的 TokenPair（尚未寫入 DB）。"""
        now = utcnow()
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            user_id=user_id,
            access_token_expires_at=now + self.access_ttl,
            refresh_token_expires_at=now + self.refresh_ttl,
            is_revoked=False,
        )

    async def revoke_all_for_user(self, user_id: str) -> int:
        """
        將該使用者所有未撤銷的 pair 標記為 revoked；沒有可撤銷的也不算錯。
        不會 commit，由呼叫端決定交易邊界（login 要和新 pair 同一筆交易）。
        """
        stmt = (
            update(TokenPair)
            .where(TokenPair.user_id == user_id, TokenPair.is_revoked.is_(False))
            .values(is_revoked=True)
        )
        res = await self.db.execute(stmt)
        return res.rowcount or 0

    async def find_active_by_refresh_token(self, refresh_token: str, user_id: str) -> Optional[TokenPair]:
        # 不分辨是哪個條件不符（撤銷 / 過期 / 使用者不符 / 不存在），一律回 None
        stmt = select(TokenPair).where(
            TokenPair.refresh_token == refresh_token,
            TokenPair.user_id == user_id,
            TokenPair.is_revoked.is_(False),
            TokenPair.refresh_token_expires_at > utcnow(),
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_active_by_access_token(self, access_token: str, user_id: str) -> Optional[TokenPair]:
        stmt = select(TokenPair).where(
            TokenPair.access_token == access_token,
            TokenPair.user_id == user_id,
            TokenPair.is_revoked.is_(False),
            TokenPair.access_token_expires_at > utcnow(),
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def save(self, pair: TokenPair) -> TokenPair:
        self.db.add(pair)
        await self.db.commit()
        await self.db.refresh(pair)
        return pair

    async def commit(self) -> None:
        await self.db.commit()

    async def purge_expired(self, older_than: datetime) -> int:
        """刪除 refresh 早於 older_than 就已過期的 pair，回傳刪除數量。"""
        stmt = delete(TokenPair).where(TokenPair.refresh_token_expires_at < older_than)
        res = await self.db.execute(stmt)
        await self.db.commit()
        return res.rowcount or 0
