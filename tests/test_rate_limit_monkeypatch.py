# tests/test_rate_limit_monkeypatch.py
import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient

from usermgmt.services import rate_limit

pytestmark = pytest.mark.asyncio


async def test_login_rate_limited_via_monkeypatch(client: AsyncClient, monkeypatch):
    # patch 到路由實際引用的位置，且路由端以 await 呼叫 -> 假函式必須是 async
    async def _deny(*args, **kwargs):
        return False, 60  # 不允許、建議 60 秒後再試

    monkeypatch.setattr("usermgmt.api.v1.endpoints.auth.check_limit_and_hit", _deny, raising=True)

    r = await client.post("/api/v1/auth/login", json={"email": "kim@example.com", "password": "Test123!@"})
    assert r.status_code == 429, r.text
    assert r.headers["Retry-After"] == "60"


async def test_rate_limit_disabled_lets_everything_through(monkeypatch):
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_ENABLED", False, raising=False)
    assert await rate_limit.check_limit_and_hit("127.0.0.1", "kim@example.com") == (True, 0)
    # 停用時不會碰 Redis
    assert rate_limit._redis is None


async def test_limit_keys_normalise_email():
    assert rate_limit._key_email_ip("Kim@Example.com", "1.2.3.4") == "rl:login:ei:kim@example.com|1.2.3.4"
    assert rate_limit._key_ip("") == "rl:login:ip:unknown"


# ---- 啟用狀態：用 fakeredis 跑真正的滑動視窗 ----

@pytest_asyncio.fixture
async def fake_redis(monkeypatch):
    r = fakeredis.FakeAsyncRedis(decode_responses=True)
    monkeypatch.setattr(rate_limit, "_redis", r)
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_ENABLED", True, raising=False)
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_WINDOW_SEC", 600, raising=False)
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_MAX_PER_IP", 100, raising=False)
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_MAX_PER_EMAIL_IP", 2, raising=False)
    yield r
    await r.aclose()


async def test_email_ip_bucket_blocks_after_limit(fake_redis):
    results = [await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com") for _ in range(3)]

    assert results[:2] == [(True, 0), (True, 0)]
    allowed, retry_after = results[2]
    assert allowed is False
    assert 1 <= retry_after <= 600


async def test_hit_sets_key_ttl_to_window(fake_redis):
    await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com")

    for key in (rate_limit._key_ip("1.2.3.4"), rate_limit._key_email_ip("kim@example.com", "1.2.3.4")):
        ttl = await fake_redis.ttl(key)
        assert 0 < ttl <= 600


async def test_reset_success_clears_email_ip_bucket_only(fake_redis):
    for _ in range(2):
        await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com")
    assert (await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com"))[0] is False

    await rate_limit.reset_success("1.2.3.4", "kim@example.com")

    assert await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com") == (True, 0)
    # IP 桶保留
    assert await fake_redis.zcard(rate_limit._key_ip("1.2.3.4")) == 3


async def test_email_buckets_are_per_ip(fake_redis):
    for _ in range(2):
        await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com")

    assert (await rate_limit.check_limit_and_hit("1.2.3.4", "kim@example.com"))[0] is False
    assert await rate_limit.check_limit_and_hit("5.6.7.8", "kim@example.com") == (True, 0)


async def test_ip_bucket_blocks_across_emails(fake_redis, monkeypatch):
    monkeypatch.setattr(rate_limit._settings, "RATE_LIMIT_MAX_PER_IP", 2, raising=False)

    assert await rate_limit.check_limit_and_hit("1.2.3.4", "a@example.com") == (True, 0)
    assert await rate_limit.check_limit_and_hit("1.2.3.4", "b@example.com") == (True, 0)
    allowed, retry_after = await rate_limit.check_limit_and_hit("1.2.3.4", "c@example.com")
    assert allowed is False and retry_after >= 1
