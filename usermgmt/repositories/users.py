# usermgmt/repositories/users.py
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.core.errors import ConflictError
from usermgmt.core.security import PasswordHasher
from usermgmt.models.users import User

log = logging.getLogger(__name__)


def _is_duplicate_email(exc: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: users.email"
    # Postgres: 'duplicate key value violates unique constraint "ix_users_email"'
    msg = str(exc.orig).lower()
    return ("unique" in msg or "duplicate" in msg) and "email" in msg


class UserRepository:
    """
    users 表的資料存取（Credential Store）。
    密碼在 save() 寫入前雜湊；已經是雜湊的值不會再雜湊一次。
    """

    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    async def get(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def list_all(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at, User.id))
        return list(result.scalars().all())

    async def save(self, user: User) -> User:
        if not self.hasher.is_hashed(user.password_hash):
            user.password_hash = await self.hasher.hash(user.password_hash)

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not _is_duplicate_email(exc):
                raise
            # unique(email) 擋下的重複（預檢與寫入之間的競態也會落到這裡）
            log.info("Rejected duplicate email on save")
            raise ConflictError("Email already exists")
        await self.db.refresh(user)
        return user

    async def delete(self, user_id: str) -> int:
        """回傳實際刪除的筆數。"""
        res = await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.commit()
        return res.rowcount or 0
