# usermgmt/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from jose import jwt, JWTError
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from usermgmt.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _sanitize_password(p: str) -> str:
    # bcrypt 只吃前 72 bytes，避免極長密碼在某些環境報錯
    return p[:72] if isinstance(p, str) else p


# === Password Hashing ===
class PasswordHasher:
    """
    bcrypt 雜湊（單向、含 salt、固定 cost）。
    hash / verify 是 CPU 密集運算，丟到 thread pool 以免卡住事件圈。
    """

    def __init__(self, rounds: int = 10):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__ident="2b",
            bcrypt__rounds=rounds,
            # 若密碼超過 72 bytes，不拋錯
            bcrypt__truncate_error=False,
        )

    def is_hashed(self, value: Optional[str]) -> bool:
        """已經是 bcrypt 雜湊（$2a$/$2b$/$2y$ 格式）就回 True，避免重複雜湊。"""
        if not value:
            return False
        return self._context.identify(value) is not None

    def hash_sync(self, plain: str) -> str:
        return self._context.hash(_sanitize_password(plain))

    async def hash(self, plain: str) -> str:
        return await run_in_threadpool(self.hash_sync, plain)

    async def verify(self, plain: str, password_hash: str) -> bool:
        if not plain or not self.is_hashed(password_hash):
            return False
        try:
            return await run_in_threadpool(
                self._context.verify, _sanitize_password(plain), password_hash
            )
        except ValueError:
            # 雜湊格式毀損：視為驗證失敗
            return False


# === JWT Helpers ===
def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TokenSigner:
    """
    JWT 簽發 / 驗證（python-jose）。
    每個 token 都會帶 type、jti、iat、exp；access / refresh 用不同金鑰。
    """

    def __init__(
        self,
        secret_key: str,
        refresh_secret_key: Optional[str] = None,
        algorithm: str = "HS256",
    ):
        self.secret_key = secret_key
        # 若沒有設定 REFRESH_SECRET_KEY，會 fallback 至 SECRET_KEY（相容）
        self.refresh_secret_key = refresh_secret_key or secret_key
        self.algorithm = algorithm

    def _key(self, token_type: str) -> str:
        return self.refresh_secret_key if token_type == REFRESH_TOKEN_TYPE else self.secret_key

    def sign(self, claims: Dict[str, Any], *, token_type: str, expires_in: timedelta) -> str:
        # None 的 claim 直接略過，不寫進 token
        to_encode = {k: v for k, v in claims.items() if v is not None}
        now = _now_utc()
        to_encode.update({
            "type": token_type,
            "jti": str(uuid4()),
            "iat": int(now.timestamp()),
            "exp": now + expires_in,
        })
        return jwt.encode(to_encode, self._key(token_type), algorithm=self.algorithm)

    def verify(self, token: str, *, token_type: str) -> Dict[str, Any]:
        """
        驗證簽章與 exp 並解出 payload；type 不符也視為無效。
        任何失敗都拋 JWTError，由呼叫端轉成 401。
        """
        payload = jwt.decode(token, self._key(token_type), algorithms=[self.algorithm])
        if payload.get("type") != token_type:
            raise JWTError(f"Invalid token type (need {token_type} token).")
        return payload


def build_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)


def build_token_signer() -> TokenSigner:
    return TokenSigner(
        secret_key=settings.SECRET_KEY,
        refresh_secret_key=settings.REFRESH_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
