# usermgmt/core/deps.py
"""
依賴組裝：每個 request 用同一個 AsyncSession 明確建出 repository → service，
不使用全域 container。
"""
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.core.config import settings
from usermgmt.core.errors import ForbiddenError, UnauthorizedError
from usermgmt.core.security import (
    PasswordHasher,
    TokenSigner,
    build_password_hasher,
    build_token_signer,
)
from usermgmt.db.session import get_db
from usermgmt.models.users import User, UserRole
from usermgmt.repositories.tokens import TokenRepository
from usermgmt.repositories.users import UserRepository
from usermgmt.services.auth import AuthService
from usermgmt.services.users import UserService

# Bearer 缺少時不讓 FastAPI 自己回 403，統一由我們回 401
bearer_scheme = HTTPBearer(auto_error=False)

_hasher = build_password_hasher()
_signer = build_token_signer()


def get_password_hasher() -> PasswordHasher:
    return _hasher


def get_token_signer() -> TokenSigner:
    return _signer


def get_user_service(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserService:
    return UserService(UserRepository(db, hasher))


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    signer: TokenSigner = Depends(get_token_signer),
) -> AuthService:
    tokens = TokenRepository(
        db,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES),
    )
    return AuthService(UserService(UserRepository(db, hasher)), tokens, signer, hasher)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    從 Bearer Access Token 解析目前使用者：
      1️⃣ 驗證 JWT 與 exp、type == "access"
      2️⃣ 該 access token 必須屬於一組未撤銷的 TokenPair（登出後立即失效）
      3️⃣ 依 sub 查 DB 取得 User
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Not authenticated")
    return await auth.authenticate(credentials.credentials)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Admin role required")
    return current_user


def ensure_self_or_admin(current_user: User, user_id: str) -> None:
    if current_user.id != user_id and current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Permission denied")


def ensure_self(current_user: User, user_id: str) -> None:
    if current_user.id != user_id:
        raise ForbiddenError("You can only modify your own account")
