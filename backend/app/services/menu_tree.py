"""
菜单树构建 (Menu Tree Builder)

把扁平的菜单集合（按 sort、id 升序）还原为层级树，并在用户导航视图中剪掉空目录。

Rebuilds the hierarchical tree from a flat menu collection ordered by (sort, id)
and prunes empty directories for the user navigation view.

两步设计 (Two Passes):
    1. build_tree：从根（parent_id=0）递归划分，兄弟节点保持输入中的相对顺序；
       没有子节点时不输出 children 键（而不是空数组）
    2. prune_empty_directories：后序遍历，先剪子树，再删除剪完后没有子节点的目录；
       directory 以外的类型永远不会被删除

用户视图先过滤再构建：目录无条件保留作为骨架，菜单/按钮等只保留角色授权的；
构建完成后再剪掉没有任何可见叶子的目录。
"""
from collections import defaultdict
from collections.abc import Iterable
from typing import Any, Dict, List, Optional, Sequence, Set

from app.models.menu import MENU_ENABLED, MENU_TYPE_DIRECTORY, ROOT_PARENT_ID

MenuNode = Dict[str, Any]


def sort_menus(menus: Iterable[Any]) -> List[Any]:
    """按 (sort, id) 升序排列，兄弟节点显示顺序依赖这个顺序 (Order by sort then id)"""
    return sorted(menus, key=lambda m: (getattr(m, "sort", 0) or 0, m.id))


def _badge(menu: Any) -> Optional[Dict[str, Any]]:
    badge_type = getattr(menu, "badge_type", None)
    if not badge_type:
        return None
    return {
        "type": badge_type,
        "content": getattr(menu, "badge_content", None),
        "style": getattr(menu, "badge_style", None),
    }


def menu_to_node(menu: Any) -> MenuNode:
    """
    单个菜单转换为树节点 (Convert one menu into a tree node)

    扩展元数据先合并，具名字段后写入：键冲突时具名字段优先。
    Extension metadata is merged first so that named fields win on conflict.
    """
    meta: Dict[str, Any] = dict(getattr(menu, "meta", None) or {})
    meta.update({
        "title": getattr(menu, "title", None),
        "icon": getattr(menu, "icon", None),
        "activeIcon": getattr(menu, "active_icon", None),
        "hidden": bool(getattr(menu, "hidden", False)),
        "hideChildren": bool(getattr(menu, "hide_children", False)),
        "hideBreadcrumb": bool(getattr(menu, "hide_breadcrumb", False)),
        "hideTab": bool(getattr(menu, "hide_tab", False)),
        "keepAlive": bool(getattr(menu, "keep_alive", False)),
        "fixedTab": bool(getattr(menu, "fixed_tab", False)),
        "alwaysShow": bool(getattr(menu, "always_show", False)),
        "activePath": getattr(menu, "active_path", None),
        "isExternal": bool(getattr(menu, "is_external", False)),
        "externalUrl": getattr(menu, "external_url", None),
        "badge": _badge(menu),
        "permissionCode": getattr(menu, "permission_code", None),
    })
    return {
        "id": menu.id,
        "type": menu.type,
        "name": getattr(menu, "name", None),
        "path": getattr(menu, "path", None),
        "component": getattr(menu, "component", None),
        "redirect": getattr(menu, "redirect", None),
        "status": getattr(menu, "status", MENU_ENABLED),
        "meta": meta,
    }


def build_tree(menus: Sequence[Any], parent_id: int = ROOT_PARENT_ID) -> List[MenuNode]:
    """
    从扁平集合构建菜单树 (Build the menu tree from a flat collection)

    Args:
        menus: 已按 (sort, id) 排序的扁平菜单集合
        parent_id: 起始父节点，默认根节点 0

    Returns:
        List[MenuNode]: 树节点列表；父节点不在集合中的菜单不可达，不会输出
    """
    children_of: Dict[int, List[Any]] = defaultdict(list)
    for menu in menus:
        children_of[menu.parent_id].append(menu)

    # 已损坏的环形数据不会导致无限递归
    visited: Set[int] = set()

    def _build(current_parent: int) -> List[MenuNode]:
        nodes: List[MenuNode] = []
        for menu in children_of.get(current_parent, ()):
            if menu.id in visited:
                continue
            visited.add(menu.id)
            node = menu_to_node(menu)
            children = _build(menu.id)
            if children:
                node["children"] = children
            nodes.append(node)
        return nodes

    return _build(parent_id)


def prune_empty_directories(tree: List[MenuNode]) -> List[MenuNode]:
    """
    后序剪枝：删除剪完后没有子节点的目录 (Post-order removal of childless directories)

    返回新的节点列表，不修改输入。
    """
    pruned: List[MenuNode] = []
    for node in tree:
        node = dict(node)
        children = prune_empty_directories(node.get("children", []))
        if children:
            node["children"] = children
        else:
            node.pop("children", None)

        if node["type"] == MENU_TYPE_DIRECTORY and not children:
            continue
        pruned.append(node)
    return pruned


def flatten_ids(tree: List[MenuNode]) -> List[int]:
    """先序展开树中所有节点 ID (Pre-order list of node ids)"""
    ids: List[int] = []
    for node in tree:
        ids.append(node["id"])
        ids.extend(flatten_ids(node.get("children", [])))
    return ids


def filter_user_menus(menus: Iterable[Any], visible_menu_ids: Set[int]) -> List[Any]:
    """
    用户导航视图的构建输入 (Input of the user navigation tree)

    {启用且未隐藏的目录} ∪ {启用、未隐藏且已授权的非目录菜单}，保持输入顺序。
    """
    selected = []
    for menu in menus:
        if menu.status != MENU_ENABLED or menu.hidden or getattr(menu, "deleted_at", None) is not None:
            continue
        if menu.type == MENU_TYPE_DIRECTORY or menu.id in visible_menu_ids:
            selected.append(menu)
    return selected
