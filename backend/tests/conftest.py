"""
RBAC 管理后台测试基础配置

提供基于临时文件的 SQLite 异步数据库、mock Redis、FastAPI 测试客户端和内置账号等通用 fixture。
所有测试使用隔离的 SQLite 数据库，不依赖外部 PostgreSQL/Redis。
"""
import fnmatch
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# 必须在导入 app 之前设置环境变量，避免真实连接
os.environ["POSTGRES_HOST"] = "localhost"
os.environ["REDIS_HOST"] = "localhost"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-rbac-admin"
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from app.core import database
from app.core.database import Base, get_db
from app.core.security import create_access_token
import app.core.redis as redis_module
from app.core.redis import get_redis
from app.models.user import User
from app.services.seed import seed_builtin_data


# ── Mock Redis ────────────────────────────────────────────────────────
class FakePipeline:
    """收集有序集合命令，execute 时依次执行。"""

    def __init__(self, redis):
        self._redis = redis
        self._commands = []

    def zremrangebyscore(self, key, min_score, max_score):
        self._commands.append(("zremrangebyscore", key, min_score, max_score))
        return self

    def zadd(self, key, mapping):
        self._commands.append(("zadd", key, mapping))
        return self

    def zcard(self, key):
        self._commands.append(("zcard", key))
        return self

    def expire(self, key, seconds):
        self._commands.append(("expire", key, seconds))
        return self

    async def execute(self):
        results = []
        for name, key, *args in self._commands:
            zset = self._redis._zsets.setdefault(key, {})
            if name == "zremrangebyscore":
                min_score, max_score = args
                stale = [m for m, score in zset.items() if min_score <= score <= max_score]
                for member in stale:
                    del zset[member]
                results.append(len(stale))
            elif name == "zadd":
                zset.update(args[0])
                results.append(len(args[0]))
            elif name == "zcard":
                results.append(len(zset))
            else:
                results.append(True)
        self._commands = []
        return results


class FakeRedis:
    """内存级 Redis 模拟，支持基本键值操作、黑名单和限流管道。"""

    def __init__(self):
        self._store: dict[str, str] = {}
        self._zsets: dict[str, dict] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, **kwargs) -> None:
        self._store[key] = value

    async def setex(self, key: str, time: int, value: str) -> None:
        self._store[key] = value

    async def delete(self, *keys: str) -> None:
        for k in keys:
            self._store.pop(k, None)

    async def exists(self, key: str) -> int:
        return 1 if key in self._store else 0

    async def keys(self, pattern: str = "*") -> list[str]:
        return [k for k in self._store if fnmatch.fnmatch(k, pattern)]

    async def ping(self) -> bool:
        return True

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        pass


# ── Fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def session_factory(tmp_path, monkeypatch):
    """每个测试一个 SQLite 文件库；中间件和后台任务使用的会话工厂一并替换。"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session", factory)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """提供一个干净的数据库会话。"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """提供配置好依赖覆盖的异步 HTTP 测试客户端，每个请求使用独立会话。"""
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    original_redis_client = redis_module.redis_client
    redis_module.redis_client = fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    redis_module.redis_client = original_redis_client


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> dict:
    """写入内置角色、菜单和账号，返回 username → User。"""
    await seed_builtin_data(db_session)
    users = (await db_session.execute(select(User))).scalars().all()
    return {user.username: user for user in users}


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.username)}"}


@pytest_asyncio.fixture
async def superadmin_headers(seeded) -> dict:
    """超级管理员认证头。"""
    return _headers(seeded["superadmin"])


@pytest_asyncio.fixture
async def admin_headers(seeded) -> dict:
    """管理员认证头。"""
    return _headers(seeded["admin"])


@pytest_asyncio.fixture
async def user_headers(seeded) -> dict:
    """普通用户认证头。"""
    return _headers(seeded["user"])


@pytest_asyncio.fixture
async def make_user(client: AsyncClient, superadmin_headers: dict):
    """通过接口创建额外的普通用户，返回 (user_id, headers)。"""
    async def _make(username: str, **extra) -> tuple:
        payload = {"username": username, "password": "secret123", **extra}
        resp = await client.post("/api/v1/users", json=payload, headers=superadmin_headers)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        token = create_access_token(str(body["id"]), username)
        return body["id"], {"Authorization": f"Bearer {token}"}
    return _make
