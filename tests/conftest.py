# tests/conftest.py
import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---- 測試期環境變數（先於 app 載入）----
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("TOKEN_CLEANUP_ENABLED", "0")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from usermgmt.main import app  # noqa: E402
from usermgmt.core.deps import get_password_hasher, get_token_signer  # noqa: E402
from usermgmt.core.security import PasswordHasher, TokenSigner  # noqa: E402
from usermgmt.db.session import get_db  # noqa: E402
from usermgmt.models.base import Base  # noqa: E402
from usermgmt.models.tokens import TokenPair  # noqa: E402
from usermgmt.models.users import UserRole  # noqa: E402
from usermgmt.repositories.tokens import TokenRepository  # noqa: E402
from usermgmt.repositories.users import UserRepository  # noqa: E402
from usermgmt.services.auth import AuthService  # noqa: E402
from usermgmt.services.users import UserService  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    """每個測試一個全新的 in-memory SQLite（StaticPool 讓所有 session 共用同一條連線）。"""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def hasher():
    # 測試用最低 cost，跑得快
    return PasswordHasher(rounds=4)


@pytest.fixture
def signer():
    return TokenSigner(
        secret_key="test-access-secret-0123456789abcdef0123456789",
        refresh_secret_key="test-refresh-secret-0123456789abcdef01234567",
    )


@pytest.fixture
def user_service(db, hasher):
    return UserService(UserRepository(db, hasher))


@pytest.fixture
def token_repo(db):
    return TokenRepository(db)


@pytest.fixture
def auth_service(user_service, token_repo, signer, hasher):
    return AuthService(user_service, token_repo, signer, hasher)


@pytest_asyncio.fixture
async def client(session_factory, hasher, signer):
    """使用 ASGITransport 直接掛載 app，DB 換成測試用 engine。"""
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_signer] = lambda: signer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def promote_admin(session_factory, hasher):
    async def _promote(user_id: str) -> None:
        async with session_factory() as session:
            await UserService(UserRepository(session, hasher)).update(user_id, {"role": UserRole.ADMIN})
    return _promote


@pytest.fixture
def active_pairs(session_factory):
    """回傳某使用者未撤銷的 TokenPair 數量（另開 session 直接數 DB）。"""
    async def _count(user_id: str) -> int:
        async with session_factory() as session:
            res = await session.execute(
                select(func.count())
                .select_from(TokenPair)
                .where(TokenPair.user_id == user_id, TokenPair.is_revoked.is_(False))
            )
            return res.scalar_one()
    return _count
