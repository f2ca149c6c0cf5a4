# usermgmt/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends, Request

from usermgmt.core.deps import get_auth_service, get_current_user
from usermgmt.core.errors import TooManyRequestsError
from usermgmt.models.users import User
from usermgmt.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    Token,
)
from usermgmt.schemas.user import UserRead
from usermgmt.services.auth import AuthService
from usermgmt.services.rate_limit import check_limit_and_hit, reset_success

router = APIRouter(tags=["auth"])


# === 登入（含 Redis Rate Limit） ===
@router.post("/login", response_model=LoginResponse, responses={401: {"description": "Invalid credentials"}})
async def login(
    request: Request,
    payload: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """
    使用者登入，簽發 Access / Refresh；同一使用者舊的 token 會全部撤銷。
    """
    ip = (request.client.host if request.client else "unknown") or "unknown"
    email = payload.email.strip()

    allowed, retry_after = await check_limit_and_hit(ip, email)
    if not allowed:
        raise TooManyRequestsError(
            "Too many login attempts. Please try again later.",
            retry_after=retry_after,
        )

    result = await auth.login(email, payload.password)

    # ✅ 登入成功後清空 email+IP 的嘗試（避免誤鎖）
    await reset_success(ip, email)
    return result


# === Refresh：只換新的 access token ===
@router.post("/refresh", response_model=Token, responses={401: {"description": "Invalid refresh token"}})
async def refresh_token(
    payload: RefreshRequest,
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.refresh_token(payload.refresh_token)


# === 登出：撤銷該使用者所有 token ===
@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.logout(current_user.id)


# === 驗證 Token ===
@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user
