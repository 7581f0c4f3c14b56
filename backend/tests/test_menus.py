"""菜单树与菜单管理接口测试。"""
from httpx import AsyncClient


def _names(tree):
    return [node["name"] for node in tree]


def _find(tree, name):
    for node in tree:
        if node["name"] == name:
            return node
        found = _find(node.get("children", []), name)
        if found:
            return found
    return None


async def _menu_ids(client: AsyncClient, headers: dict) -> dict:
    resp = await client.get("/api/v1/menus/list", headers=headers)
    return {m["name"]: m["id"] for m in resp.json()}


class TestUserMenuTree:
    async def test_plain_user_sees_business_only(self, client: AsyncClient, user_headers):
        resp = await client.get("/api/v1/menus", headers=user_headers)
        assert resp.status_code == 200
        tree = resp.json()
        assert _names(tree) == ["Dashboard", "Business"]
        business = tree[1]
        assert _names(business["children"]) == ["Article", "Task"]
        assert "children" not in tree[0]

    async def test_admin_tree_excludes_menu_management(self, client: AsyncClient, admin_headers):
        tree = (await client.get("/api/v1/menus", headers=admin_headers)).json()
        system = _find(tree, "System")
        assert _names(system["children"]) == ["User", "Role", "OperationLog"]

    async def test_node_shape(self, client: AsyncClient, user_headers):
        tree = (await client.get("/api/v1/menus", headers=user_headers)).json()
        dashboard = tree[0]
        assert dashboard["path"] == "/dashboard"
        assert dashboard["meta"]["title"] == "仪表盘"
        assert dashboard["meta"]["keepAlive"] is True
        assert dashboard["meta"]["permissionCode"] == "dashboard:view"

    async def test_hidden_and_disabled_menus_are_skipped(self, client: AsyncClient, superadmin_headers, user_headers):
        ids = await _menu_ids(client, superadmin_headers)
        await client.put(f"/api/v1/menus/{ids['Task']}", headers=superadmin_headers, json={"hidden": True})
        await client.put(f"/api/v1/menus/{ids['Dashboard']}", headers=superadmin_headers, json={"status": 0})
        tree = (await client.get("/api/v1/menus", headers=user_headers)).json()
        assert _names(tree) == ["Business"]
        assert _names(tree[0]["children"]) == ["Article"]

    async def test_empty_directory_is_pruned(self, client: AsyncClient, superadmin_headers):
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "type": "directory", "name": "Reports", "title": "报表", "path": "/reports", "sort": 9,
        })
        assert resp.status_code == 201
        directory_id = resp.json()["id"]
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": directory_id, "type": "menu", "name": "Sales", "title": "销售",
            "path": "/reports/sales", "component": "reports/sales",
        })
        assert resp.status_code == 201

        tree = (await client.get("/api/v1/menus", headers=superadmin_headers)).json()
        assert _find(tree, "Reports") is None

        roles = (await client.get("/api/v1/roles/all", headers=superadmin_headers)).json()
        super_role = next(r for r in roles if r["code"] == "super_admin")
        bound = (await client.get(f"/api/v1/roles/{super_role['id']}", headers=superadmin_headers)).json()["menu_ids"]
        await client.put(f"/api/v1/roles/{super_role['id']}/menus", headers=superadmin_headers, json={
            "menu_ids": bound + [resp.json()["id"]],
        })
        tree = (await client.get("/api/v1/menus", headers=superadmin_headers)).json()
        assert _names(_find(tree, "Reports")["children"]) == ["Sales"]

    async def test_user_without_roles_gets_empty_tree(self, client: AsyncClient, superadmin_headers, make_user):
        user_id, headers = await make_user("nobody")
        await client.put(f"/api/v1/users/{user_id}/roles", headers=superadmin_headers, json={"role_ids": []})
        resp = await client.get("/api/v1/menus", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == []


class TestAdminMenuViews:
    async def test_full_tree_is_unpruned(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/menus", headers=admin_headers, json={
            "type": "directory", "name": "Empty", "title": "空目录", "path": "/empty", "sort": 99,
        })
        tree = (await client.get("/api/v1/menus/tree", headers=admin_headers)).json()
        assert _names(tree) == ["Dashboard", "Business", "System", "Empty"]
        assert "children" not in tree[-1]

    async def test_flat_list_ordered(self, client: AsyncClient, admin_headers):
        menus = (await client.get("/api/v1/menus/list", headers=admin_headers)).json()
        keys = [(m["sort"], m["id"]) for m in menus]
        assert keys == sorted(keys)

    async def test_plain_user_forbidden(self, client: AsyncClient, user_headers):
        assert (await client.get("/api/v1/menus/tree", headers=user_headers)).status_code == 403
        assert (await client.get("/api/v1/menus/list", headers=user_headers)).status_code == 403


class TestMenuMutations:
    async def test_menu_requires_component(self, client: AsyncClient, superadmin_headers):
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "type": "menu", "name": "NoComp", "title": "缺组件", "path": "/nocomp",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "menu_requires_component"

    async def test_button_at_root_rejected(self, client: AsyncClient, superadmin_headers):
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "type": "button", "title": "导出", "permission_code": "report:export",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "button_requires_parent"

    async def test_button_under_button_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": ids["ArticleCreate"], "type": "button", "title": "子按钮", "permission_code": "article:sub",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "button_parent_is_button"

    async def test_duplicate_permission_code(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": ids["Article"], "type": "button", "title": "重复", "permission_code": "article:create",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "duplicate_permission_code"

    async def test_missing_parent(self, client: AsyncClient, superadmin_headers):
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": 9999, "type": "menu", "name": "Orphan", "title": "孤儿",
            "path": "/orphan", "component": "orphan",
        })
        assert resp.status_code == 404

    async def test_add_button_grants_permission_after_binding(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": ids["Article"], "type": "button", "title": "导出文章", "permission_code": "article:export",
        })
        assert resp.status_code == 201
        me = (await client.get("/api/v1/auth/me", headers=superadmin_headers)).json()
        assert "article:export" not in me["permissions"]

    async def test_move_under_own_descendant_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['System']}", headers=superadmin_headers, json={
            "parent_id": ids["User"],
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "parent_cycle"

    async def test_self_parent_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['System']}", headers=superadmin_headers, json={
            "parent_id": ids["System"],
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "parent_is_self"

    async def test_move_to_other_directory(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['OperationLog']}", headers=superadmin_headers, json={
            "parent_id": ids["Business"],
        })
        assert resp.status_code == 200
        assert resp.json()["parent_id"] == ids["Business"]

    async def test_directory_with_children_keeps_type(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['Business']}", headers=superadmin_headers, json={
            "type": "menu",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "directory_has_children"

    async def test_menu_with_buttons_cannot_become_button(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['Task']}", headers=superadmin_headers, json={
            "type": "button", "permission_code": "task:convert",
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "button_cannot_have_button_children"
        menu = (await client.get(f"/api/v1/menus/{ids['Task']}", headers=superadmin_headers)).json()
        assert menu["type"] == "menu"

    async def test_null_for_required_column_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['Task']}", headers=superadmin_headers, json={"status": None})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "status_required"

        resp = await client.post("/api/v1/menus", headers=superadmin_headers, json={
            "parent_id": ids["Task"], "type": "button", "title": "导出", "permission_code": "task:export",
            "hidden": None,
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == "hidden_required"

    async def test_status_outside_enabled_disabled_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.put(f"/api/v1/menus/{ids['Task']}", headers=superadmin_headers, json={"status": 5})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "invalid_status"

    async def test_delete_with_children_rejected(self, client: AsyncClient, superadmin_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.delete(f"/api/v1/menus/{ids['Article']}", headers=superadmin_headers)
        assert resp.status_code == 409

    async def test_delete_leaf_revokes_permission(self, client: AsyncClient, superadmin_headers, user_headers):
        ids = await _menu_ids(client, superadmin_headers)
        resp = await client.delete(f"/api/v1/menus/{ids['ArticlePublish']}", headers=superadmin_headers)
        assert resp.status_code == 200
        me = (await client.get("/api/v1/auth/me", headers=user_headers)).json()
        assert "article:publish" not in me["permissions"]
        assert (await client.get(f"/api/v1/menus/{ids['ArticlePublish']}", headers=superadmin_headers)).status_code == 404
