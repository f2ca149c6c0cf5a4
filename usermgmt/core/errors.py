# usermgmt/core/errors.py
import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class AppError(Exception):
    """服務層錯誤基底；由 register_error_handlers 統一轉成 HTTP 回應。"""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.detail = detail or self.default_detail
        self.headers = headers
        super().__init__(self.detail)


class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Resource not found"


class UnauthorizedError(AppError):
    # 帳密錯誤 / refresh token 無效 / 過期 / 已撤銷 全部收斂成同一種錯誤，避免洩露是哪一關失敗
    status_code = 401
    default_detail = "Invalid credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = 403
    default_detail = "Permission denied"


class TooManyRequestsError(AppError):
    status_code = 429
    default_detail = "Too many requests"

    def __init__(self, detail: Optional[str] = None, retry_after: int = 1):
        super().__init__(detail, headers={"Retry-After": str(retry_after)})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        # 統一輸出格式
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        # 客製化，但保持資訊節制
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        # 小強化：避免洩露伺服器細節
        resp = await call_next(request)
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp
