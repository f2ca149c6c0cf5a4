# tests/test_basic_endpoints.py
import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_health(client: AsyncClient):
    r = await client.get("/api/v1/health/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


async def test_metrics_and_ops(client: AsyncClient):
    """測試 /metrics, /healthz, /readyz 都能正確回應"""
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "# HELP" in r.text  # Prometheus metrics 格式驗證

    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json().get("ok") is True

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json().get("ready") is True


async def test_root_and_security_headers(client: AsyncClient):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"


async def test_openapi_exposes_field_rules(client: AsyncClient):
    r = await client.get("/api/v1/openapi.json")
    assert r.status_code == 200
    schemas = r.json()["components"]["schemas"]
    assert "x-field-rules" in schemas["UserCreate"]
    assert "password_hash" not in schemas["UserRead"]["properties"]
