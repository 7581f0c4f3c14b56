"""权限解析与访问闸门单元测试，使用内存身份存储。"""
from types import SimpleNamespace

import pytest

from app.services.access_gate import AccessGate, AccessKind, AccessMode, evaluate
from app.services.permission import PermissionResolver


def _rec(id, status=1, deleted_at=None, **extra):
    return SimpleNamespace(id=id, status=status, deleted_at=deleted_at, **extra)


class FakeStore:
    """内存身份存储：users / user_roles / roles / role_menus / menus。"""

    def __init__(self, users=None, user_roles=None, roles=None, role_menus=None, menus=None, fail=False):
        self.users = users or {}
        self.user_roles = user_roles or {}
        self.roles = roles or {}
        self.role_menus = role_menus or {}
        self.menus = menus or {}
        self.fail = fail
        self.calls = 0

    async def get_user(self, user_id):
        self.calls += 1
        if self.fail:
            raise ConnectionError("store unreachable")
        return self.users.get(user_id)

    async def role_ids_for_user(self, user_id):
        return list(self.user_roles.get(user_id, []))

    async def roles_by_ids(self, role_ids):
        return [self.roles[i] for i in role_ids if i in self.roles]

    async def menu_ids_for_roles(self, role_ids):
        ids = []
        for role_id in role_ids:
            for menu_id in self.role_menus.get(role_id, []):
                if menu_id not in ids:
                    ids.append(menu_id)
        return ids

    async def menus_by_ids(self, menu_ids):
        return [self.menus[i] for i in menu_ids if i in self.menus]


@pytest.fixture
def store():
    return FakeStore(
        users={1: _rec(1), 2: _rec(2), 3: _rec(3, status=0)},
        user_roles={1: [10, 11], 2: [12], 3: [10]},
        roles={
            10: _rec(10, code="editor"),
            11: _rec(11, code="viewer"),
            12: _rec(12, code="disabled_role", status=0),
        },
        role_menus={10: [100, 101, 103], 11: [101, 102, 104], 12: [100]},
        menus={
            100: _rec(100, permission_code="article:create"),
            101: _rec(101, permission_code="article:view"),
            102: _rec(102, permission_code="   "),
            103: _rec(103, permission_code="article:delete", status=0),
            104: _rec(104, permission_code="task:view", deleted_at="2024-01-01"),
        },
    )


class TestPermissionResolver:
    async def test_union_over_roles_counts_shared_menu_once(self, store):
        perms = await PermissionResolver(store).resolve_permissions(1)
        assert perms == {"article:create", "article:view"}

    async def test_disabled_role_contributes_nothing(self, store):
        assert await PermissionResolver(store).resolve_permissions(2) == set()
        assert await PermissionResolver(store).resolve_role_codes(2) == set()

    async def test_disabled_user_resolves_empty(self, store):
        assert await PermissionResolver(store).resolve_permissions(3) == set()

    async def test_unknown_user_resolves_empty(self, store):
        assert await PermissionResolver(store).resolve_permissions(999) == set()

    async def test_user_without_roles_resolves_empty(self, store):
        store.users[4] = _rec(4)
        assert await PermissionResolver(store).resolve_permissions(4) == set()

    async def test_role_codes(self, store):
        assert await PermissionResolver(store).resolve_role_codes(1) == {"editor", "viewer"}

    async def test_visible_menu_ids_include_codeless_menus(self, store):
        assert await PermissionResolver(store).visible_menu_ids(1) == {100, 101, 102, 103, 104}

    async def test_store_fault_resolves_empty(self):
        resolver = PermissionResolver(FakeStore(fail=True))
        assert await resolver.resolve_permissions(1) == set()
        assert await resolver.resolve_role_codes(1) == set()
        assert await resolver.visible_menu_ids(1) == set()

    async def test_no_caching_between_calls(self, store):
        resolver = PermissionResolver(store)
        assert "task:view" not in await resolver.resolve_permissions(1)
        store.menus[104].deleted_at = None
        assert "task:view" in await resolver.resolve_permissions(1)


class TestEvaluate:
    def test_all_mode(self):
        assert evaluate({"a:b", "c:d"}, ["a:b", "c:d"], AccessMode.ALL).allowed
        decision = evaluate({"a:b"}, ["a:b", "c:d"], AccessMode.ALL)
        assert not decision.allowed
        assert decision.missing == {"c:d"}

    def test_any_mode(self):
        assert evaluate({"a:b"}, ["a:b", "c:d"], AccessMode.ANY).allowed
        assert not evaluate({"x:y"}, ["a:b", "c:d"], AccessMode.ANY).allowed

    def test_empty_requirement_denies(self):
        assert not evaluate({"a:b"}, [], AccessMode.ANY).allowed
        assert not evaluate({"a:b"}, [], AccessMode.ALL).allowed


class TestAccessGate:
    async def test_permission_all_and_any(self, store):
        gate = AccessGate(PermissionResolver(store))
        assert await gate.check_access(1, ["article:view", "article:create"], AccessMode.ALL)
        assert not await gate.check_access(1, ["article:view", "article:delete"], AccessMode.ALL)
        assert await gate.check_access(1, ["article:view", "article:delete"], AccessMode.ANY)

    async def test_unauthenticated_denied(self, store):
        gate = AccessGate(PermissionResolver(store))
        decision = await gate.decide(None, ["article:view"])
        assert not decision.allowed
        assert decision.reason == "unauthenticated"

    async def test_empty_requirement_denied(self, store):
        gate = AccessGate(PermissionResolver(store))
        decision = await gate.decide(1, [])
        assert not decision.allowed
        assert decision.reason == "empty requirement"

    async def test_role_kind(self, store):
        gate = AccessGate(PermissionResolver(store))
        assert await gate.check_access(1, ["editor"], kind=AccessKind.ROLE)
        assert not await gate.check_access(1, ["admin"], kind=AccessKind.ROLE)

    async def test_admin_checks(self, store):
        store.roles[11].code = "admin"
        gate = AccessGate(PermissionResolver(store), admin_role_codes=["super_admin", "admin"])
        assert await gate.is_admin(1)
        assert not await gate.is_super_admin(1)

    async def test_store_fault_denies(self):
        gate = AccessGate(PermissionResolver(FakeStore(fail=True)))
        assert not await gate.check_access(1, ["article:view"])
