# usermgmt/services/users.py
import logging
from typing import Any, List, Mapping, Optional

from usermgmt.core.errors import ConflictError, NotFoundError
from usermgmt.models.users import User, UserRole
from usermgmt.repositories.users import UserRepository

log = logging.getLogger(__name__)

# 可被 update() 合併的欄位；password 會對應到 password_hash（save 時雜湊）
_UPDATABLE_FIELDS = {"email", "name", "password", "role"}


class UserService:
    """使用者目錄：建立 / 查詢 / 更新 / 刪除。"""

    def __init__(self, users: UserRepository):
        self.users = users

    async def create(self, email: str, password: str, name: str) -> User:
        # 預檢只為了回友善的 409；真正的保證是 DB 的 unique constraint
        if await self.users.get_by_email(email):
            raise ConflictError("Email already exists")

        user = User(
            email=email,
            name=name,
            password_hash=password,
            role=UserRole.USER,
            is_email_verified=False,
        )
        user = await self.users.save(user)
        log.info("User created: %s", user.id)
        return user

    async def find_all(self) -> List[User]:
        return await self.users.list_all()

    async def find_one(self, user_id: str) -> User:
        user = await self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        # 找不到回 None（不拋錯），login 需要這個語意
        return await self.users.get_by_email(email)

    async def update(self, user_id: str, fields: Mapping[str, Any]) -> User:
        user = await self.find_one(user_id)
        for key, value in fields.items():
            if key not in _UPDATABLE_FIELDS or value is None:
                continue
            if key == "password":
                user.password_hash = value
            elif key == "role":
                user.role = UserRole(value)
            else:
                setattr(user, key, value)
        # TODO: email 變更時沒有預檢重複，目前靠 unique constraint 回 409
        return await self.users.save(user)

    async def remove(self, user_id: str) -> None:
        deleted = await self.users.delete(user_id)
        if deleted == 0:
            raise NotFoundError("User not found")
        log.info("User removed: %s", user_id)
