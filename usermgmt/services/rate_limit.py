# usermgmt/services/rate_limit.py
from __future__ import annotations

import time
from typing import Optional, Tuple

from redis.asyncio import Redis
from usermgmt.core.config import settings as _settings

# 單例 Redis（lazy-init）
_redis: Optional[Redis] = None


def _enabled() -> bool:
    # 每次呼叫時才讀設定，方便測試 monkeypatch（測試環境 get_settings 已強制關閉）
    return bool(_settings.RATE_LIMIT_ENABLED)


def _window_sec() -> int:
    return int(_settings.RATE_LIMIT_WINDOW_SEC)


def get_redis() -> Redis:
    """Lazy 初始化 Redis 連線。"""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            _settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,  # 用字串便於除錯
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def _key_ip(ip: str) -> str:
    return f"rl:login:ip:{ip or 'unknown'}"


def _key_email_ip(email: str, ip: str) -> str:
    return f"rl:login:ei:{(email or '').lower()}|{ip or 'unknown'}"


async def _prune(redis: Redis, key: str, now_s: float) -> None:
    """移除滑動視窗外的紀錄（score < now - window）。"""
    await redis.zremrangebyscore(key, "-inf", now_s - _window_sec())


async def _count(redis: Redis, key: str) -> int:
    return int(await redis.zcard(key))


async def _oldest_ts(redis: Redis, key: str) -> Optional[float]:
    """取得窗口內最舊嘗試的時間戳（若無則 None）。"""
    data = await redis.zrange(key, 0, 0, withscores=True)
    if data:
        return float(data[0][1])
    return None


async def _hit(redis: Redis, key: str, now_s: float) -> None:
    """記錄一次嘗試（ZSET，score=now），並讓 key 在視窗結束後自動過期。"""
    member = f"{now_s:.6f}"
    await redis.zadd(key, {member: now_s})
    await redis.expire(key, _window_sec())


async def _retry_after(redis: Redis, key: str, now_s: float) -> int:
    oldest = await _oldest_ts(redis, key)
    return max(1, int(_window_sec() - (now_s - (oldest or now_s))))


async def check_limit_and_hit(ip: str, email: Optional[str]) -> Tuple[bool, int]:
    """
    檢查是否超出限流；若允許，會「順便記一次嘗試」。
    回傳：(allowed, retry_after_seconds)
      先看 IP 維度，再看 email+IP 維度。
    """
    if not _enabled():
        return True, 0

    r = get_redis()
    now_s = time.time()

    # ---- IP 維度 ----
    kip = _key_ip(ip)
    await _prune(r, kip, now_s)
    if await _count(r, kip) >= int(_settings.RATE_LIMIT_MAX_PER_IP):
        return False, await _retry_after(r, kip, now_s)

    # ---- email+IP 維度 ----
    if email:
        kei = _key_email_ip(email, ip)
        await _prune(r, kei, now_s)
        if await _count(r, kei) >= int(_settings.RATE_LIMIT_MAX_PER_EMAIL_IP):
            return False, await _retry_after(r, kei, now_s)

    await _hit(r, kip, now_s)
    if email:
        await _hit(r, _key_email_ip(email, ip), now_s)

    return True, 0


async def reset_success(ip: str, email: Optional[str]) -> None:
    """
    登入成功後清空 email+IP 的桶，降低誤鎖風險。
    IP 維度不清空，保留反掃號的保護力。
    """
    if not email or not _enabled():
        return
    await get_redis().delete(_key_email_ip(email, ip))
