# usermgmt/services/auth.py
import logging
from datetime import timedelta
from typing import Optional

from jose import JWTError

from usermgmt.core.errors import NotFoundError, UnauthorizedError
from usermgmt.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    PasswordHasher,
    TokenSigner,
)
from usermgmt.models.base import utcnow
from usermgmt.models.users import User
from usermgmt.repositories.tokens import TokenRepository
from usermgmt.schemas.auth import LoginResponse, MessageResponse, Token
from usermgmt.schemas.user import UserPublic
from usermgmt.services.users import UserService

log = logging.getLogger(__name__)

LOGOUT_MESSAGE = "Logged out"


class AuthService:
    """
    登入 / refresh / 登出。
    每個使用者同一時間最多只有一組未撤銷的 TokenPair：
      - login：撤銷舊的 → 簽新的 → 寫入（同一筆交易）
      - refresh：只換 access token，refresh token 不變
      - logout：全部撤銷，可重複呼叫
    """

    def __init__(
        self,
        users: UserService,
        tokens: TokenRepository,
        signer: TokenSigner,
        hasher: PasswordHasher,
    ):
        self.users = users
        self.tokens = tokens
        self.signer = signer
        self.hasher = hasher

    @property
    def access_ttl(self) -> timedelta:
        return self.tokens.access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self.tokens.refresh_ttl

    async def login(self, email: str, password: str) -> LoginResponse:
        user = await self.users.find_by_email(email)
        # 統一錯誤避免帳號探測
        if not user or not await self.hasher.verify(password, user.password_hash):
            log.info("Login rejected")
            raise UnauthorizedError("Invalid email or password")

        await self.tokens.revoke_all_for_user(user.id)

        access_token = self.signer.sign(
            {"sub": user.id, "email": user.email, "role": user.role.value},
            token_type=ACCESS_TOKEN_TYPE,
            expires_in=self.access_ttl,
        )
        refresh_token = self.signer.sign(
            {"sub": user.id},
            token_type=REFRESH_TOKEN_TYPE,
            expires_in=self.refresh_ttl,
        )

        await self.tokens.save(self.tokens.issue(access_token, refresh_token, user.id))
        log.info("Login succeeded: %s", user.id)

        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user=UserPublic.model_validate(user),
        )

    async def refresh_token(self, refresh_token: Optional[str]) -> Token:
        if not refresh_token:
            raise UnauthorizedError("Refresh token is required")

        invalid = UnauthorizedError("Invalid refresh token")
        try:
            payload = self.signer.verify(refresh_token, token_type=REFRESH_TOKEN_TYPE)
        except JWTError:
            log.info("Refresh rejected: bad signature or expired")
            raise invalid

        sub = payload.get("sub")
        if not sub:
            raise invalid

        pair = await self.tokens.find_active_by_refresh_token(refresh_token, sub)
        if not pair:
            log.info("Refresh rejected: no active session for %s", sub)
            raise invalid

        # refresh token 只帶 sub，email / role 在這裡會是空的（簽發時直接略過）
        new_access = self.signer.sign(
            {"sub": sub, "email": payload.get("email"), "role": payload.get("role")},
            token_type=ACCESS_TOKEN_TYPE,
            expires_in=self.access_ttl,
        )

        pair.access_token = new_access
        pair.access_token_expires_at = utcnow() + self.access_ttl
        await self.tokens.save(pair)

        return Token(access_token=new_access)

    async def logout(self, user_id: str) -> MessageResponse:
        revoked = await self.tokens.revoke_all_for_user(user_id)
        await self.tokens.commit()
        log.info("Logout: %s (revoked=%d)", user_id, revoked)
        return MessageResponse(message=LOGOUT_MESSAGE)

    async def authenticate(self, access_token: Optional[str]) -> User:
        """Bearer access token → User；登出或被新登入取代的 token 一律 401。"""
        unauthorized = UnauthorizedError("Invalid or expired access token")
        if not access_token:
            raise unauthorized

        try:
            payload = self.signer.verify(access_token, token_type=ACCESS_TOKEN_TYPE)
        except JWTError:
            raise unauthorized

        sub = payload.get("sub")
        if not sub:
            raise unauthorized

        if not await self.tokens.find_active_by_access_token(access_token, sub):
            raise unauthorized

        # 不信任 token 內的 email / role，一律以 DB 為準
        try:
            return await self.users.find_one(sub)
        except NotFoundError:
            raise unauthorized
