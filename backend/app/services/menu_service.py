"""
菜单管理服务 (Menu Management Service)

功能描述 (Description):
    用户导航树、管理端菜单树、菜单增删改。所有校验（类型必填字段、编码格式、
    按钮父节点、祖先链环路、编码唯一）都在写库之前完成，任何一条失败整个操作中止。

    User navigation tree, admin menu tree and menu CRUD. Every check runs before the
    write, and any failure aborts the whole operation.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.menu import MENU_TYPE_BUTTON, MENU_TYPE_DIRECTORY, MENU_TYPE_MENU, ROOT_PARENT_ID, Menu
from app.repositories.identity_repository import IdentityRepository
from app.services.menu_tree import (
    MenuNode,
    build_tree,
    filter_user_menus,
    prune_empty_directories,
    sort_menus,
)
from app.services.menu_validator import ensure_acyclic, validate_button_parent, validate_menu_fields
from app.services.permission import PermissionResolver

logger = logging.getLogger(__name__)

# 可通过接口写入的菜单字段 (Menu fields writable through the API)
MENU_FIELDS = (
    "parent_id", "type", "name", "title", "path", "component", "redirect", "active_path",
    "icon", "active_icon", "badge_type", "badge_content", "badge_style", "permission_code",
    "status", "hidden", "hide_children", "hide_breadcrumb", "hide_tab", "keep_alive",
    "fixed_tab", "always_show", "is_external", "external_url", "sort", "description", "meta",
)

# 空字符串统一存为 NULL，避免唯一约束把多个 "" 视为重复
_NULLABLE_TEXT = ("name", "path", "component", "redirect", "active_path", "icon", "active_icon",
                  "badge_type", "badge_content", "badge_style", "permission_code", "external_url")


def _normalize(data: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned = {key: value for key, value in data.items() if key in MENU_FIELDS}
    for key in _NULLABLE_TEXT:
        if key in cleaned and isinstance(cleaned[key], str):
            cleaned[key] = cleaned[key].strip() or None
    if "parent_id" in cleaned and cleaned["parent_id"] is None:
        cleaned["parent_id"] = ROOT_PARENT_ID
    return cleaned


class MenuService:
    """菜单服务 (Menu service)"""

    def __init__(self, session: AsyncSession, resolver: Optional[PermissionResolver] = None):
        self.session = session
        self.repo = IdentityRepository(session)
        self.resolver = resolver or PermissionResolver(self.repo)

    # ── 树视图 (Tree Views) ─────────────────────────────────────

    async def build_user_menu_tree(self, user_id: int) -> List[MenuNode]:
        """
        当前用户的导航树 (Navigation tree of a user)

        先过滤（目录无条件保留，其余只保留角色授权的），再构建，最后剪掉空目录。
        """
        visible_ids = await self.resolver.visible_menu_ids(user_id)
        if not visible_ids:
            return []
        menus = await self.repo.list_menus()
        flat = filter_user_menus(sort_menus(menus), visible_ids)
        return prune_empty_directories(build_tree(flat))

    async def build_admin_menu_tree(self, status: Optional[int] = None) -> List[MenuNode]:
        """管理端完整菜单树，不按角色过滤也不剪枝 (Full admin tree, unfiltered and unpruned)"""
        menus = await self.repo.list_menus(status=status)
        return build_tree(sort_menus(menus))

    async def list_menus(self, status: Optional[int] = None, hidden: Optional[bool] = None) -> Sequence[Menu]:
        return await self.repo.list_menus(status=status, hidden=hidden)

    async def get_menu(self, menu_id: int) -> Menu:
        menu = await self.repo.get_menu(menu_id)
        if menu is None:
            raise NotFoundError("菜单不存在 (Menu not found)")
        return menu

    # ── 写操作 (Mutations) ──────────────────────────────────────

    async def _parent_type(self, parent_id: int) -> Optional[str]:
        if parent_id == ROOT_PARENT_ID:
            return None
        parent = await self.repo.get_menu(parent_id)
        if parent is None:
            raise NotFoundError("父菜单不存在 (Parent menu not found)")
        return parent.type

    async def _ensure_code_unique(self, code: Optional[str], exclude_menu_id: Optional[int] = None) -> None:
        if code and await self.repo.permission_code_taken(code, exclude_menu_id):
            raise ValidationError(
                f"权限编码已存在：{code} (permission_code must be unique)", detail="duplicate_permission_code"
            )

    async def create_menu(self, data: Mapping[str, Any]) -> Menu:
        values = _normalize(data)
        values.setdefault("parent_id", ROOT_PARENT_ID)
        values.setdefault("type", MENU_TYPE_MENU)
        validate_menu_fields(values)

        parent_type = await self._parent_type(values["parent_id"])
        validate_button_parent(values["type"], values["parent_id"], parent_type)
        await self._ensure_code_unique(values.get("permission_code"))

        menu = Menu(**values)
        self.session.add(menu)
        await self.session.commit()
        await self.session.refresh(menu)
        logger.info("Menu %s (%s) created under parent %s", menu.id, menu.type, menu.parent_id)
        return menu

    async def update_menu(self, menu_id: int, data: Mapping[str, Any]) -> Menu:
        """
        更新菜单 (Update a menu)

        合并后的最终状态整体校验；变更父节点时沿新父节点祖先链检查环路，
        检查失败时不会写入任何字段。
        """
        menu = await self.get_menu(menu_id)
        updates = _normalize(data)
        merged = {field: getattr(menu, field) for field in MENU_FIELDS}
        merged.update(updates)

        if merged["type"] != MENU_TYPE_DIRECTORY and menu.type == MENU_TYPE_DIRECTORY:
            if await self.repo.count_children(menu_id) > 0:
                raise ValidationError(
                    "该目录下有子菜单，不能修改为非目录类型 (a directory with children cannot change type)",
                    detail="directory_has_children",
                )
        if merged["type"] == MENU_TYPE_BUTTON and menu.type != MENU_TYPE_BUTTON:
            if await self.repo.count_children(menu_id, menu_type=MENU_TYPE_BUTTON) > 0:
                raise ValidationError(
                    "该菜单下挂有按钮，不能修改为按钮类型 (a menu with button children cannot become a button)",
                    detail="button_cannot_have_button_children",
                )

        validate_menu_fields(merged)

        new_parent_id = merged["parent_id"]
        parent_type = await self._parent_type(new_parent_id)
        if new_parent_id != menu.parent_id:
            await ensure_acyclic(menu_id, new_parent_id, self.repo.parent_id_of)
        validate_button_parent(merged["type"], new_parent_id, parent_type)

        new_code = merged.get("permission_code")
        if new_code != menu.permission_code:
            await self._ensure_code_unique(new_code, exclude_menu_id=menu_id)

        for field, value in updates.items():
            setattr(menu, field, value)
        await self.session.commit()
        await self.session.refresh(menu)
        return menu

    async def delete_menu(self, menu_id: int) -> None:
        menu = await self.get_menu(menu_id)
        if await self.repo.count_children(menu_id) > 0:
            raise ConflictError("该菜单下有子菜单，不能删除 (a menu with children cannot be deleted)")

        menu.soft_delete()
        await self.repo.delete_menu_bindings(menu_id)
        await self.session.commit()
        logger.info("Menu %s deleted", menu_id)
