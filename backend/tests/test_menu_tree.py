"""菜单树构建、剪枝和校验规则单元测试。"""
from types import SimpleNamespace

import pytest

from app.core.exceptions import ValidationError
from app.services.menu_tree import (
    build_tree,
    filter_user_menus,
    flatten_ids,
    menu_to_node,
    prune_empty_directories,
    sort_menus,
)
from app.services.menu_validator import (
    ensure_acyclic,
    validate_button_parent,
    validate_menu_fields,
)


def _menu(id, parent_id=0, type="menu", sort=0, status=1, hidden=False, **extra):
    fields = dict(
        id=id, parent_id=parent_id, type=type, sort=sort, status=status, hidden=hidden,
        name=f"Menu{id}", title=f"菜单{id}", path=f"/m{id}", component=None, redirect=None,
        permission_code=None, meta=None, deleted_at=None,
    )
    fields.update(extra)
    return SimpleNamespace(**fields)


class TestBuildTree:
    def test_nested_structure_and_leaf_without_children_key(self):
        menus = sort_menus([_menu(1, type="directory"), _menu(2, parent_id=1), _menu(3, parent_id=2, type="button")])
        tree = build_tree(menus)
        assert len(tree) == 1
        assert tree[0]["children"][0]["id"] == 2
        leaf = tree[0]["children"][0]["children"][0]
        assert leaf["id"] == 3
        assert "children" not in leaf

    def test_siblings_ordered_by_sort_then_id(self):
        menus = sort_menus([_menu(5, sort=2), _menu(3, sort=1), _menu(4, sort=1), _menu(1, sort=3)])
        assert [node["id"] for node in build_tree(menus)] == [3, 4, 5, 1]

    def test_orphans_are_unreachable(self):
        tree = build_tree(sort_menus([_menu(1), _menu(2, parent_id=99)]))
        assert flatten_ids(tree) == [1]

    def test_corrupt_cycle_does_not_recurse_forever(self):
        menus = [_menu(1), _menu(2, parent_id=3), _menu(3, parent_id=2)]
        assert flatten_ids(build_tree(menus)) == [1]

    def test_empty_input(self):
        assert build_tree([]) == []


class TestMenuNode:
    def test_named_fields_override_meta(self):
        node = menu_to_node(_menu(1, meta={"title": "stale", "extra": 1}, keep_alive=True))
        assert node["meta"]["title"] == "菜单1"
        assert node["meta"]["extra"] == 1
        assert node["meta"]["keepAlive"] is True

    def test_badge_only_when_typed(self):
        assert menu_to_node(_menu(1))["meta"]["badge"] is None
        node = menu_to_node(_menu(1, badge_type="dot", badge_content="new", badge_style="danger"))
        assert node["meta"]["badge"] == {"type": "dot", "content": "new", "style": "danger"}


class TestPrune:
    def test_removes_nested_empty_directories(self):
        menus = sort_menus([
            _menu(1, type="directory"),
            _menu(2, parent_id=1, type="directory"),
            _menu(3, type="directory"),
            _menu(4, parent_id=3),
        ])
        pruned = prune_empty_directories(build_tree(menus))
        assert flatten_ids(pruned) == [3, 4]

    def test_non_directory_leaves_survive(self):
        menus = sort_menus([_menu(1), _menu(2, type="link"), _menu(3, type="directory")])
        assert flatten_ids(prune_empty_directories(build_tree(menus))) == [1, 2]

    def test_does_not_mutate_input(self):
        tree = build_tree(sort_menus([_menu(1, type="directory"), _menu(2, parent_id=1, type="directory")]))
        prune_empty_directories(tree)
        assert tree[0]["children"][0]["id"] == 2


class TestUserFilter:
    def test_directories_kept_unauthorized_leaves_dropped(self):
        menus = sort_menus([
            _menu(1, type="directory"),
            _menu(2, parent_id=1),
            _menu(3, parent_id=1),
            _menu(4, type="directory"),
            _menu(5, parent_id=4),
            _menu(6, hidden=True),
            _menu(7, status=0),
        ])
        flat = filter_user_menus(menus, {2, 6, 7})
        tree = prune_empty_directories(build_tree(flat))
        assert flatten_ids(tree) == [1, 2]


class TestMenuValidation:
    @pytest.mark.parametrize("data,detail", [
        ({"title": "", "type": "menu"}, "title_required"),
        ({"title": "X", "type": "widget"}, "invalid_menu_type"),
        ({"title": "X", "type": "directory", "name": "Dir"}, "directory_requires_path"),
        ({"title": "X", "type": "menu", "name": "M", "path": "/m"}, "menu_requires_component"),
        ({"title": "X", "type": "button"}, "button_requires_permission_code"),
        ({"title": "X", "type": "link", "name": "L"}, "link_requires_external_url"),
        ({"title": "X", "type": "embed", "name": "E", "path": "/e"}, "embed_requires_external_url"),
        ({"title": "X", "type": "button", "permission_code": "User:View"}, "invalid_permission_code"),
        ({"title": "X", "type": "menu", "name": "bad-name", "path": "/m", "component": "c"}, "invalid_name"),
        ({"title": "X", "type": "menu", "name": "M", "path": "m", "component": "c"}, "invalid_path"),
        ({"title": "X", "type": "link", "name": "L", "external_url": "not a url"}, "invalid_external_url"),
        ({"title": "X", "type": "menu", "name": "M", "path": "/m", "component": "c", "badge_type": "big"},
         "invalid_badge_type"),
    ])
    def test_rejected(self, data, detail):
        with pytest.raises(ValidationError) as exc:
            validate_menu_fields(data)
        assert exc.value.detail == detail

    def test_button_without_name_is_fine(self):
        validate_menu_fields({"title": "新增", "type": "button", "permission_code": "user:create"})

    def test_button_parent_rules(self):
        with pytest.raises(ValidationError):
            validate_button_parent("button", 0, None)
        with pytest.raises(ValidationError):
            validate_button_parent("button", 5, "button")
        validate_button_parent("button", 5, "menu")
        validate_button_parent("menu", 0, None)


class TestAcyclic:
    @staticmethod
    def _parents(mapping):
        async def parent_of(menu_id):
            return mapping.get(menu_id)
        return parent_of

    async def test_self_parent(self):
        with pytest.raises(ValidationError) as exc:
            await ensure_acyclic(1, 1, self._parents({}))
        assert exc.value.detail == "parent_is_self"

    async def test_descendant_parent(self):
        # 1 → 2 → 3，把 1 挂到 3 下面会成环
        with pytest.raises(ValidationError) as exc:
            await ensure_acyclic(1, 3, self._parents({2: 1, 3: 2, 1: 0}))
        assert exc.value.detail == "parent_cycle"

    async def test_unrelated_parent(self):
        await ensure_acyclic(3, 1, self._parents({1: 0, 2: 1, 3: 2}))
