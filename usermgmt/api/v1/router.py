# usermgmt/api/v1/router.py
from fastapi import APIRouter

from .endpoints import health, users, auth

# === API v1 主路由 ===
api_router = APIRouter()

# 系統健康檢查
api_router.include_router(health.router, prefix="/health", tags=["health"])

# 使用者（註冊、查詢、更新、刪除）
api_router.include_router(users.router, prefix="/users", tags=["users"])

# 認證 / 登入 / Refresh Token / 登出
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
