# tests/test_token_repository.py
from datetime import timedelta

import pytest

from usermgmt.models.base import utcnow
from usermgmt.services.token_cleanup import cleanup_expired_tokens

pytestmark = pytest.mark.asyncio


async def test_issue_sets_expiries_and_defaults(token_repo):
    before = utcnow()
    pair = token_repo.issue("acc", "ref", "user-1")
    after = utcnow()

    assert pair.is_revoked is False
    assert before + timedelta(hours=1) <= pair.access_token_expires_at <= after + timedelta(hours=1)
    assert before + timedelta(days=7) <= pair.refresh_token_expires_at <= after + timedelta(days=7)
    assert pair.id is None  # 尚未寫入


async def test_revoke_all_for_user_only_touches_that_user(token_repo, active_pairs):
    await token_repo.save(token_repo.issue("a1", "r1", "user-1"))
    await token_repo.save(token_repo.issue("a2", "r2", "user-2"))

    assert await token_repo.revoke_all_for_user("user-1") == 1
    await token_repo.commit()

    assert await active_pairs("user-1") == 0
    assert await active_pairs("user-2") == 1


async def test_revoke_all_is_idempotent(token_repo):
    assert await token_repo.revoke_all_for_user("user-1") == 0
    await token_repo.save(token_repo.issue("a1", "r1", "user-1"))
    assert await token_repo.revoke_all_for_user("user-1") == 1
    assert await token_repo.revoke_all_for_user("user-1") == 0


async def test_find_active_by_refresh_token_predicates(token_repo):
    pair = await token_repo.save(token_repo.issue("a1", "r1", "user-1"))

    assert (await token_repo.find_active_by_refresh_token("r1", "user-1")).id == pair.id
    assert await token_repo.find_active_by_refresh_token("r1", "user-2") is None
    assert await token_repo.find_active_by_refresh_token("unknown", "user-1") is None

    pair.refresh_token_expires_at = utcnow() - timedelta(seconds=1)
    await token_repo.save(pair)
    assert await token_repo.find_active_by_refresh_token("r1", "user-1") is None


async def test_find_active_skips_revoked(token_repo):
    await token_repo.save(token_repo.issue("a1", "r1", "user-1"))
    await token_repo.revoke_all_for_user("user-1")
    await token_repo.commit()

    assert await token_repo.find_active_by_refresh_token("r1", "user-1") is None
    assert await token_repo.find_active_by_access_token("a1", "user-1") is None


async def test_find_active_by_access_token_checks_access_expiry(token_repo):
    pair = await token_repo.save(token_repo.issue("a1", "r1", "user-1"))
    assert (await token_repo.find_active_by_access_token("a1", "user-1")).id == pair.id

    pair.access_token_expires_at = utcnow() - timedelta(seconds=1)
    await token_repo.save(pair)
    assert await token_repo.find_active_by_access_token("a1", "user-1") is None
    # refresh 仍然有效
    assert await token_repo.find_active_by_refresh_token("r1", "user-1") is not None


async def test_cleanup_purges_only_long_expired_pairs(token_repo, db):
    old = token_repo.issue("a-old", "r-old", "user-1")
    old.refresh_token_expires_at = utcnow() - timedelta(days=40)
    old.is_revoked = True
    recent = token_repo.issue("a-recent", "r-recent", "user-1")
    recent.refresh_token_expires_at = utcnow() - timedelta(days=2)
    recent.is_revoked = True
    live = token_repo.issue("a-live", "r-live", "user-1")
    for pair in (old, recent, live):
        await token_repo.save(pair)

    assert await cleanup_expired_tokens(db, retention_days=30) == 1
    assert await cleanup_expired_tokens(db, retention_days=30) == 0
    assert await token_repo.find_active_by_refresh_token("r-live", "user-1") is not None
