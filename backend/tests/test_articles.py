"""文章接口测试：行级数据权限、批量删除、发布切换。"""
from httpx import AsyncClient


async def _create(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {"title": "默认标题", "content": "正文内容", **fields}
    resp = await client.post("/api/v1/articles", headers=headers, json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestArticleCreate:
    async def test_create_draft_with_summary_from_content(self, client: AsyncClient, user_headers, seeded):
        article = await _create(client, user_headers, content="x" * 300)
        assert article["status"] == "draft"
        assert article["author_id"] == seeded["user"].id
        assert article["summary"] == "x" * 200
        assert article["published_at"] is None

    async def test_create_published_sets_publish_time(self, client: AsyncClient, user_headers):
        article = await _create(client, user_headers, status="published")
        assert article["published_at"] is not None

    async def test_invalid_status_rejected(self, client: AsyncClient, user_headers):
        resp = await client.post("/api/v1/articles", headers=user_headers, json={"title": "t", "status": "live"})
        assert resp.status_code == 422


class TestArticleVisibility:
    async def test_non_admin_sees_only_own(self, client: AsyncClient, user_headers, admin_headers, make_user):
        _, other_headers = await make_user("kate")
        await _create(client, user_headers, title="mine")
        await _create(client, other_headers, title="theirs")

        body = (await client.get("/api/v1/articles", headers=user_headers)).json()
        assert [a["title"] for a in body["items"]] == ["mine"]
        assert body["total"] == 1

        body = (await client.get("/api/v1/articles", headers=admin_headers)).json()
        assert body["total"] == 2

    async def test_author_filter_ignored_for_non_admin(self, client: AsyncClient, user_headers, make_user):
        other_id, other_headers = await make_user("leo")
        await _create(client, other_headers, title="theirs")
        body = (await client.get("/api/v1/articles", params={"author_id": other_id}, headers=user_headers)).json()
        assert body["total"] == 0

    async def test_admin_author_filter(self, client: AsyncClient, admin_headers, user_headers, make_user, seeded):
        _, other_headers = await make_user("mia")
        await _create(client, user_headers, title="mine")
        await _create(client, other_headers, title="theirs")
        body = (await client.get(
            "/api/v1/articles", params={"author_id": seeded["user"].id}, headers=admin_headers,
        )).json()
        assert [a["title"] for a in body["items"]] == ["mine"]

    async def test_guessed_id_is_forbidden(self, client: AsyncClient, user_headers, make_user):
        _, other_headers = await make_user("nina")
        article = await _create(client, other_headers)
        resp = await client.get(f"/api/v1/articles/{article['id']}", headers=user_headers)
        assert resp.status_code == 403
        resp = await client.put(f"/api/v1/articles/{article['id']}", headers=user_headers, json={"title": "hijack"})
        assert resp.status_code == 403
        resp = await client.delete(f"/api/v1/articles/{article['id']}", headers=user_headers)
        assert resp.status_code == 403

    async def test_view_count_increments(self, client: AsyncClient, user_headers):
        article = await _create(client, user_headers)
        await client.get(f"/api/v1/articles/{article['id']}", headers=user_headers)
        resp = await client.get(f"/api/v1/articles/{article['id']}", headers=user_headers)
        assert resp.json()["view_count"] == 2

    async def test_keyword_and_category_filters(self, client: AsyncClient, user_headers):
        await _create(client, user_headers, title="Python 入门", category="tech")
        await _create(client, user_headers, title="旅行日记", category="life")
        body = (await client.get("/api/v1/articles", params={"keyword": "Python"}, headers=user_headers)).json()
        assert [a["title"] for a in body["items"]] == ["Python 入门"]
        body = (await client.get("/api/v1/articles", params={"category": "life"}, headers=user_headers)).json()
        assert [a["title"] for a in body["items"]] == ["旅行日记"]
        categories = (await client.get("/api/v1/articles/categories", headers=user_headers)).json()
        assert categories == ["life", "tech"]

    async def test_missing_permission(self, client: AsyncClient, superadmin_headers, make_user):
        user_id, headers = await make_user("oscar")
        await client.put(f"/api/v1/users/{user_id}/roles", headers=superadmin_headers, json={"role_ids": []})
        assert (await client.get("/api/v1/articles", headers=headers)).status_code == 403


class TestArticleMutations:
    async def test_update_own(self, client: AsyncClient, user_headers):
        article = await _create(client, user_headers)
        resp = await client.put(f"/api/v1/articles/{article['id']}", headers=user_headers, json={"title": "新标题"})
        assert resp.status_code == 200
        assert resp.json()["title"] == "新标题"

    async def test_admin_can_edit_any(self, client: AsyncClient, user_headers, admin_headers):
        article = await _create(client, user_headers)
        resp = await client.put(f"/api/v1/articles/{article['id']}", headers=admin_headers, json={"category": "ops"})
        assert resp.status_code == 200

    async def test_toggle_publish(self, client: AsyncClient, user_headers):
        article = await _create(client, user_headers)
        resp = await client.put(f"/api/v1/articles/{article['id']}/publish", headers=user_headers)
        assert resp.json()["status"] == "published"
        first_published = resp.json()["published_at"]
        resp = await client.put(f"/api/v1/articles/{article['id']}/publish", headers=user_headers)
        assert resp.json()["status"] == "draft"
        resp = await client.put(f"/api/v1/articles/{article['id']}/publish", headers=user_headers)
        assert resp.json()["published_at"] == first_published

    async def test_delete_own(self, client: AsyncClient, user_headers):
        article = await _create(client, user_headers)
        resp = await client.delete(f"/api/v1/articles/{article['id']}", headers=user_headers)
        assert resp.status_code == 200
        assert (await client.get(f"/api/v1/articles/{article['id']}", headers=user_headers)).status_code == 404

    async def test_batch_delete_narrowed_to_own_rows(self, client: AsyncClient, user_headers, admin_headers, make_user):
        _, other_headers = await make_user("paul")
        mine = await _create(client, user_headers)
        theirs = await _create(client, other_headers)
        resp = await client.post("/api/v1/articles/batch-delete", headers=user_headers, json={
            "ids": [mine["id"], theirs["id"]],
        })
        assert resp.json() == {"deleted": 1}
        body = (await client.get("/api/v1/articles", headers=admin_headers)).json()
        assert [a["id"] for a in body["items"]] == [theirs["id"]]

    async def test_batch_delete_requires_ids(self, client: AsyncClient, user_headers):
        resp = await client.post("/api/v1/articles/batch-delete", headers=user_headers, json={"ids": []})
        assert resp.status_code == 422
