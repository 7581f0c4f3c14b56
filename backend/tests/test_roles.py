"""角色管理与角色↔菜单绑定测试。"""
from httpx import AsyncClient


async def _menu_ids(client: AsyncClient, headers: dict) -> dict:
    resp = await client.get("/api/v1/menus/list", headers=headers)
    return {m["name"] or m["permission_code"]: m["id"] for m in resp.json()}


async def _create_role(client: AsyncClient, headers: dict, code: str = "editor") -> dict:
    resp = await client.post("/api/v1/roles", headers=headers, json={"name": "编辑", "code": code})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestRoleQueries:
    async def test_list_roles_with_menus(self, client: AsyncClient, admin_headers):
        resp = await client.get("/api/v1/roles", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert [r["code"] for r in body["items"]] == ["super_admin", "admin", "user"]
        user_role = body["items"][2]
        codes = {m["permission_code"] for m in user_role["menus"]}
        assert "article:create" in codes
        assert "user:view" not in codes

    async def test_all_roles_open_to_any_user(self, client: AsyncClient, user_headers):
        resp = await client.get("/api/v1/roles/all", headers=user_headers)
        assert resp.status_code == 200
        assert len(resp.json()) == 3

    async def test_list_requires_admin(self, client: AsyncClient, user_headers):
        resp = await client.get("/api/v1/roles", headers=user_headers)
        assert resp.status_code == 403

    async def test_get_role_detail(self, client: AsyncClient, superadmin_headers):
        roles = (await client.get("/api/v1/roles/all", headers=superadmin_headers)).json()
        admin_role = next(r for r in roles if r["code"] == "admin")
        resp = await client.get(f"/api/v1/roles/{admin_role['id']}", headers=superadmin_headers)
        assert resp.status_code == 200
        ids = await _menu_ids(client, superadmin_headers)
        assert ids["User"] in resp.json()["menu_ids"]
        assert ids["Menu"] not in resp.json()["menu_ids"]

    async def test_missing_role(self, client: AsyncClient, admin_headers):
        resp = await client.get("/api/v1/roles/9999", headers=admin_headers)
        assert resp.status_code == 404


class TestRoleMutations:
    async def test_create_role(self, client: AsyncClient, admin_headers):
        role = await _create_role(client, admin_headers)
        assert role["code"] == "editor"
        assert role["menu_ids"] == []

    async def test_invalid_code(self, client: AsyncClient, admin_headers):
        resp = await client.post("/api/v1/roles", headers=admin_headers, json={"name": "X", "code": "Bad-Code"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "invalid_role_code"

    async def test_duplicate_code(self, client: AsyncClient, admin_headers):
        resp = await client.post("/api/v1/roles", headers=admin_headers, json={"name": "X", "code": "admin"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "duplicate_role_code"

    async def test_update_role(self, client: AsyncClient, admin_headers):
        role = await _create_role(client, admin_headers)
        resp = await client.put(f"/api/v1/roles/{role['id']}", headers=admin_headers, json={
            "name": "高级编辑", "code": "senior_editor",
        })
        assert resp.status_code == 200
        assert resp.json()["code"] == "senior_editor"

    async def test_null_for_required_column_rejected(self, client: AsyncClient, admin_headers):
        role = await _create_role(client, admin_headers)
        for field in ("name", "status", "sort"):
            resp = await client.put(f"/api/v1/roles/{role['id']}", headers=admin_headers, json={field: None})
            assert resp.status_code == 422
            assert resp.json()["detail"] == f"{field}_required"

    async def test_status_outside_enabled_disabled_rejected(self, client: AsyncClient, admin_headers):
        resp = await client.post("/api/v1/roles", headers=admin_headers, json={"name": "X", "code": "x_role", "status": 2})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "invalid_status"
        role = await _create_role(client, admin_headers)
        resp = await client.put(f"/api/v1/roles/{role['id']}", headers=admin_headers, json={"status": -1})
        assert resp.json()["detail"] == "invalid_status"

    async def test_reserved_code_is_immutable(self, client: AsyncClient, superadmin_headers):
        roles = (await client.get("/api/v1/roles/all", headers=superadmin_headers)).json()
        user_role = next(r for r in roles if r["code"] == "user")
        resp = await client.put(f"/api/v1/roles/{user_role['id']}", headers=superadmin_headers, json={"code": "member"})
        assert resp.status_code == 409

    async def test_reserved_role_cannot_be_deleted(self, client: AsyncClient, superadmin_headers):
        roles = (await client.get("/api/v1/roles/all", headers=superadmin_headers)).json()
        user_role = next(r for r in roles if r["code"] == "user")
        resp = await client.delete(f"/api/v1/roles/{user_role['id']}", headers=superadmin_headers)
        assert resp.status_code == 409

    async def test_delete_role_drops_user_permissions(
        self, client: AsyncClient, superadmin_headers, make_user
    ):
        role = await _create_role(client, superadmin_headers)
        ids = await _menu_ids(client, superadmin_headers)
        await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["User"]],
        })
        user_id, headers = await make_user("ivan", role_ids=[role["id"]])
        assert (await client.get("/api/v1/users", headers=headers)).status_code == 200

        resp = await client.delete(f"/api/v1/roles/{role['id']}", headers=superadmin_headers)
        assert resp.status_code == 200
        assert (await client.get("/api/v1/users", headers=headers)).status_code == 403


class TestMenuAssignment:
    async def test_replace_bindings(self, client: AsyncClient, superadmin_headers):
        role = await _create_role(client, superadmin_headers)
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["Article"], ids["Article"], -1, 0, ids["Task"]],
        })
        assert resp.status_code == 200
        assert resp.json()["menu_ids"] == [ids["Article"], ids["Task"]]

        resp = await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["Dashboard"]],
        })
        detail = (await client.get(f"/api/v1/roles/{role['id']}", headers=superadmin_headers)).json()
        assert detail["menu_ids"] == [ids["Dashboard"]]

    async def test_unknown_menu_rejected_without_changes(self, client: AsyncClient, superadmin_headers):
        role = await _create_role(client, superadmin_headers)
        ids = await _menu_ids(client, superadmin_headers)
        await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["Dashboard"]],
        })
        resp = await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["Task"], 9999],
        })
        assert resp.status_code == 422
        detail = (await client.get(f"/api/v1/roles/{role['id']}", headers=superadmin_headers)).json()
        assert detail["menu_ids"] == [ids["Dashboard"]]

    async def test_disabled_role_grants_nothing(self, client: AsyncClient, superadmin_headers, make_user):
        role = await _create_role(client, superadmin_headers)
        ids = await _menu_ids(client, superadmin_headers)
        await client.put(f"/api/v1/roles/{role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": [ids["User"]],
        })
        _, headers = await make_user("judy", role_ids=[role["id"]])
        await client.put(f"/api/v1/roles/{role['id']}", headers=superadmin_headers, json={"status": 0})
        resp = await client.get("/api/v1/auth/me", headers=headers)
        assert resp.json()["permissions"] == []
