"""
菜单模型 (Menu Model)

菜单既是导航节点也是权限载体：目录（directory）只负责组织结构，
菜单（menu）、按钮（button）、内嵌页（embed）、外链（link）可携带权限编码。
父子关系用整数 parent_id 表示，根节点的 parent_id 为 0 而不是 NULL，
整张表作为一个扁平集合加载，树结构按需构建。

A menu is both a navigation node and a permission carrier. Parent references are
plain integers with 0 as the root sentinel; the whole table is loaded as one flat
collection and trees are computed on demand.
"""
from typing import Optional

from sqlalchemy import String, Integer, Boolean, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin

ROOT_PARENT_ID = 0

MENU_TYPE_DIRECTORY = "directory"
MENU_TYPE_MENU = "menu"
MENU_TYPE_BUTTON = "button"
MENU_TYPE_EMBED = "embed"
MENU_TYPE_LINK = "link"
MENU_TYPES = (MENU_TYPE_DIRECTORY, MENU_TYPE_MENU, MENU_TYPE_BUTTON, MENU_TYPE_EMBED, MENU_TYPE_LINK)

BADGE_TYPES = ("dot", "text", "number")
BADGE_STYLES = ("primary", "success", "warning", "danger", "info")

MENU_ENABLED = 1
MENU_DISABLED = 0


class Menu(TimestampMixin, SoftDeleteMixin, Base):
    """
    菜单表 (Menu Table)

    permission_code 全局唯一（可为空）；按钮必须挂在非按钮的父节点下；
    父链不能成环；有子节点时不能删除。
    """
    __tablename__ = "menus"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)  # 主键 ID (Primary Key ID)
    parent_id: Mapped[int] = mapped_column(Integer, nullable=False, default=ROOT_PARENT_ID, index=True)  # 父菜单 ID，0 为根 (Parent ID, 0 = root)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=MENU_TYPE_MENU)  # directory/menu/button/embed/link
    name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # 路由名称 (Route Name)
    title: Mapped[str] = mapped_column(String(50), nullable=False)  # 显示标题 (Display Title)

    # 路由 (Routing)
    path: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)  # 路由路径 (Route Path)
    component: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)  # 前端组件路径 (Component Path)
    redirect: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)  # 重定向地址 (Redirect)
    active_path: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)  # 高亮的菜单路径 (Active Menu Path)

    # 图标 (Icons)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    active_icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # 徽标，badge_type 为空时整个徽标不输出 (Badge, omitted when badge_type is empty)
    badge_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # dot/text/number
    badge_content: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    badge_style: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # primary/success/warning/danger/info

    permission_code: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)  # 权限编码 module:action (Permission Code)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=MENU_ENABLED)  # 1 启用 / 0 禁用

    # 显示控制 (Display Flags)
    hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hide_children: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hide_breadcrumb: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hide_tab: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    keep_alive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fixed_tab: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    always_show: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 外部链接 (External Link)
    is_external: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    external_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 同级排序 (Sibling Sort Key)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # 扩展元数据 (Extension Metadata)
