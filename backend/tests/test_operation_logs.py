"""操作日志测试：中间件自动记录、脱敏、查询权限、清理任务，以及内置数据初始化的幂等性。"""
from datetime import timedelta

from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.menu import Menu
from app.models.mixins import utcnow
from app.models.operation_log import OperationLog
from app.models.role import Role
from app.models.user import User
from app.services.seed import seed_builtin_data
from app.tasks.operation_log_cleanup import cleanup_once


async def _logs(client: AsyncClient, headers: dict, **params) -> dict:
    resp = await client.get("/api/v1/operation-logs", params=params, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestOperationLogRecording:
    async def test_login_is_logged_with_masked_password(self, client: AsyncClient, superadmin_headers):
        await client.post("/api/v1/auth/login", json={"username": "user", "password": "123456"})
        body = await _logs(client, superadmin_headers, action="login")
        assert body["total"] == 1
        entry = body["items"][0]
        assert entry["username"] == "user"
        assert entry["module"] == "auth"
        assert entry["result"] == "success"
        assert entry["params"]["password"] == "******"
        assert entry["params"]["username"] == "user"

    async def test_failed_write_is_logged_as_fail(self, client: AsyncClient, superadmin_headers):
        await client.post("/api/v1/auth/login", json={"username": "user", "password": "wrong"})
        entry = (await _logs(client, superadmin_headers, action="login"))["items"][0]
        assert entry["result"] == "fail"
        assert entry["status_code"] == 401

    async def test_actor_taken_from_token(self, client: AsyncClient, superadmin_headers, user_headers, seeded):
        await client.post("/api/v1/articles", headers=user_headers, json={"title": "t"})
        entry = (await _logs(client, superadmin_headers, module="article"))["items"][0]
        assert entry["user_id"] == seeded["user"].id
        assert entry["username"] == "user"
        assert entry["action"] == "create"
        assert entry["method"] == "POST"

    async def test_reads_are_not_logged(self, client: AsyncClient, superadmin_headers):
        await client.get("/api/v1/articles", headers=superadmin_headers)
        await client.get("/api/v1/users", headers=superadmin_headers)
        assert (await _logs(client, superadmin_headers))["total"] == 0

    async def test_username_filter(self, client: AsyncClient, superadmin_headers, user_headers, admin_headers):
        await client.post("/api/v1/tasks", headers=user_headers, json={"title": "t"})
        await client.post("/api/v1/tasks", headers=admin_headers, json={"title": "t"})
        body = await _logs(client, superadmin_headers, username="admin")
        assert {e["username"] for e in body["items"]} == {"admin"}


class TestOperationLogAccess:
    async def test_plain_user_cannot_read(self, client: AsyncClient, user_headers):
        resp = await client.get("/api/v1/operation-logs", headers=user_headers)
        assert resp.status_code == 403

    async def test_admin_cannot_clear(self, client: AsyncClient, admin_headers):
        assert (await client.get("/api/v1/operation-logs", headers=admin_headers)).status_code == 200
        resp = await client.delete("/api/v1/operation-logs/clear", headers=admin_headers)
        assert resp.status_code == 403

    async def test_super_admin_clears_everything(self, client: AsyncClient, superadmin_headers, user_headers):
        await client.post("/api/v1/tasks", headers=user_headers, json={"title": "t"})
        await client.post("/api/v1/tasks", headers=user_headers, json={"title": "t"})
        resp = await client.delete("/api/v1/operation-logs/clear", headers=superadmin_headers)
        assert resp.status_code == 200
        assert resp.json()["deleted"] == 2
        assert (await _logs(client, superadmin_headers))["total"] == 0

    async def test_clear_keeps_recent_entries(self, client: AsyncClient, superadmin_headers, user_headers):
        await client.post("/api/v1/tasks", headers=user_headers, json={"title": "t"})
        resp = await client.delete(
            "/api/v1/operation-logs/clear", params={"before_days": 30}, headers=superadmin_headers,
        )
        assert resp.json()["deleted"] == 0
        assert (await _logs(client, superadmin_headers))["total"] == 1


class TestOperationLogCleanup:
    async def test_cleanup_removes_only_expired(self, db_session):
        db_session.add_all([
            OperationLog(module="user", action="create", method="POST", path="/api/v1/users",
                         created_at=utcnow() - timedelta(days=100)),
            OperationLog(module="user", action="update", method="PUT", path="/api/v1/users/1"),
        ])
        await db_session.commit()

        deleted = await cleanup_once(90)
        assert deleted == 1
        remaining = (await db_session.execute(select(OperationLog.action))).scalars().all()
        assert remaining == ["update"]


class TestSeed:
    async def test_seed_is_idempotent(self, db_session, seeded):
        async def counts():
            return [
                (await db_session.execute(select(func.count(model.id)))).scalar()
                for model in (Role, Menu, User)
            ]

        before = await counts()
        await seed_builtin_data(db_session)
        assert await counts() == before
        assert before[2] == 3
