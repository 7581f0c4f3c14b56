"""
菜单校验规则 (Menu Validation Rules)

所有规则在写库之前执行，失败时抛出 ValidationError，message 指明违反的具体规则。
Every rule runs before any write; a failure raises ValidationError naming the rule.

类型必填字段 (Required Fields by Type):
    directory → path
    menu      → path, component
    button    → permission_code
    link      → external_url
    embed     → path, external_url
"""
import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from app.core.exceptions import ValidationError
from app.models.menu import (
    BADGE_STYLES,
    BADGE_TYPES,
    MENU_DISABLED,
    MENU_ENABLED,
    MENU_TYPE_BUTTON,
    MENU_TYPES,
    ROOT_PARENT_ID,
)

PERMISSION_CODE_PATTERN = re.compile(r"^[a-z_]+:[a-z_]+$")
MENU_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")

# 数据库非空列，显式传 null 时拒绝 (NOT NULL columns; an explicit null is rejected)
NOT_NULL_FIELDS = (
    "status", "sort", "hidden", "hide_children", "hide_breadcrumb", "hide_tab",
    "keep_alive", "fixed_tab", "always_show", "is_external",
)

REQUIRED_FIELDS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "directory": (("path", "目录类型必须填写路由路径 (directory menus require a path)"),),
    "menu": (
        ("path", "菜单类型必须填写路由路径 (menu entries require a path)"),
        ("component", "菜单类型必须填写组件路径 (menu entries require a component)"),
    ),
    "button": (("permission_code", "按钮类型必须填写权限编码 (button menus require a permission_code)"),),
    "link": (("external_url", "外链类型必须填写外链地址 (link menus require an external_url)"),),
    "embed": (
        ("path", "内嵌类型必须填写路由路径 (embed menus require a path)"),
        ("external_url", "内嵌类型必须填写内嵌地址 (embed menus require an external_url)"),
    ),
}


def validate_menu_type(menu_type: str, data: Mapping[str, Any]) -> None:
    if menu_type not in MENU_TYPES:
        raise ValidationError(
            f"菜单类型不合法：{menu_type} (menu type must be one of {', '.join(MENU_TYPES)})",
            detail="invalid_menu_type",
        )
    for field_name, message in REQUIRED_FIELDS[menu_type]:
        if not data.get(field_name):
            raise ValidationError(message, detail=f"{menu_type}_requires_{field_name}")


def validate_permission_code(code: Optional[str]) -> None:
    if not code:
        return
    if not PERMISSION_CODE_PATTERN.match(code):
        raise ValidationError(
            "权限编码格式不正确，应为：模块:操作（如 user:view） (permission_code must look like module:action)",
            detail="invalid_permission_code",
        )


def validate_menu_name(name: Optional[str], menu_type: str) -> None:
    # 按钮不参与路由，不需要名称
    if menu_type == MENU_TYPE_BUTTON and not name:
        return
    if not name:
        raise ValidationError("菜单名称不能为空 (name is required for non-button menus)", detail="name_required")
    if not MENU_NAME_PATTERN.match(name):
        raise ValidationError(
            "菜单名称格式不正确，只能包含字母和数字 (name may contain only letters and digits)",
            detail="invalid_name",
        )


def validate_path(path: Optional[str]) -> None:
    if path and not path.startswith("/"):
        raise ValidationError("路由路径必须以 / 开头 (path must start with /)", detail="invalid_path")


def validate_external_url(url: Optional[str]) -> None:
    if not url:
        return
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("外链地址格式不正确 (external_url must be an absolute URL)", detail="invalid_external_url")


def validate_badge(badge_type: Optional[str], badge_style: Optional[str]) -> None:
    if badge_type and badge_type not in BADGE_TYPES:
        raise ValidationError(
            f"徽标类型不合法 (badge_type must be one of {', '.join(BADGE_TYPES)})", detail="invalid_badge_type"
        )
    if badge_style and badge_style not in BADGE_STYLES:
        raise ValidationError(
            f"徽标样式不合法 (badge_style must be one of {', '.join(BADGE_STYLES)})", detail="invalid_badge_style"
        )


def validate_not_null(data: Mapping[str, Any]) -> None:
    for field_name in NOT_NULL_FIELDS:
        if field_name in data and data[field_name] is None:
            raise ValidationError(f"{field_name} 不能为空 ({field_name} cannot be null)", detail=f"{field_name}_required")


def validate_status(status: Any) -> None:
    if status is not None and status not in (MENU_ENABLED, MENU_DISABLED):
        raise ValidationError("状态只能是 0 或 1 (status must be 0 or 1)", detail="invalid_status")


def validate_menu_fields(data: Mapping[str, Any]) -> None:
    """
    校验一条完整的菜单数据（创建，或更新后合并的最终状态）
    (Validate the full field set of a menu, either new or merged after update)
    """
    validate_not_null(data)
    validate_status(data.get("status"))
    if not (data.get("title") or "").strip():
        raise ValidationError("菜单标题不能为空 (title is required)", detail="title_required")
    menu_type = data.get("type")
    validate_menu_type(menu_type, data)
    validate_menu_name(data.get("name"), menu_type)
    validate_path(data.get("path"))
    validate_permission_code(data.get("permission_code"))
    validate_external_url(data.get("external_url"))
    validate_badge(data.get("badge_type"), data.get("badge_style"))


def validate_button_parent(menu_type: str, parent_id: int, parent_type: Optional[str]) -> None:
    """按钮必须挂在非根、非按钮的父节点下 (A button needs a non-root, non-button parent)"""
    if menu_type != MENU_TYPE_BUTTON:
        return
    if parent_id == ROOT_PARENT_ID:
        raise ValidationError(
            "按钮类型菜单必须指定父菜单，不能作为根节点 (a button menu cannot sit at the root; it needs a parent menu)",
            detail="button_requires_parent",
        )
    if parent_type == MENU_TYPE_BUTTON:
        raise ValidationError(
            "按钮类型菜单的父菜单不能是按钮 (a button menu cannot be placed under another button)",
            detail="button_parent_is_button",
        )


async def ensure_acyclic(
    menu_id: int,
    new_parent_id: int,
    parent_of: Callable[[int], Awaitable[Optional[int]]],
) -> None:
    """
    沿新父节点的祖先链向上遍历，遇到自身即成环 (Walk the ancestor chain of the new parent)

    Args:
        menu_id: 被移动的菜单
        new_parent_id: 目标父节点
        parent_of: 查询某个菜单父节点的协程函数，节点不存在时返回 None

    Raises:
        ValidationError: 目标父节点是自身或自身的后代
    """
    if new_parent_id == menu_id:
        raise ValidationError("父菜单不能是自己 (a menu cannot be its own parent)", detail="parent_is_self")

    visited = set()
    current: Optional[int] = new_parent_id
    while current is not None and current != ROOT_PARENT_ID:
        if current == menu_id:
            raise ValidationError(
                "不能将父菜单设置为自己的子菜单 (the new parent is a descendant of this menu; the move would create a cycle)",
                detail="parent_cycle",
            )
        if current in visited:
            # 存量数据已经成环，拒绝在其上继续挂载
            raise ValidationError(
                "菜单父链已存在环路 (the ancestor chain of the new parent already contains a cycle)",
                detail="parent_cycle",
            )
        visited.add(current)
        current = await parent_of(current)
