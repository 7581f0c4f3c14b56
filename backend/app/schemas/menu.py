"""
菜单管理相关的请求/响应数据模型。

字段级规则（类型必填字段、编码格式、按钮父节点）由 menu_validator 统一校验，
这里只约束类型和长度。
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MenuBase(BaseModel):
    """菜单可写字段。"""
    parent_id: Optional[int] = None
    type: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=50)
    title: Optional[str] = Field(default=None, max_length=50)
    path: Optional[str] = Field(default=None, max_length=200)
    component: Optional[str] = Field(default=None, max_length=200)
    redirect: Optional[str] = Field(default=None, max_length=200)
    active_path: Optional[str] = Field(default=None, max_length=200)
    icon: Optional[str] = Field(default=None, max_length=100)
    active_icon: Optional[str] = Field(default=None, max_length=100)
    badge_type: Optional[str] = None
    badge_content: Optional[str] = Field(default=None, max_length=50)
    badge_style: Optional[str] = None
    permission_code: Optional[str] = Field(default=None, max_length=100)
    status: Optional[int] = None
    hidden: Optional[bool] = None
    hide_children: Optional[bool] = None
    hide_breadcrumb: Optional[bool] = None
    hide_tab: Optional[bool] = None
    keep_alive: Optional[bool] = None
    fixed_tab: Optional[bool] = None
    always_show: Optional[bool] = None
    is_external: Optional[bool] = None
    external_url: Optional[str] = Field(default=None, max_length=500)
    sort: Optional[int] = None
    description: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class MenuCreate(MenuBase):
    """创建菜单请求体。"""
    title: str = Field(max_length=50)
    type: str = "menu"


class MenuUpdate(MenuBase):
    """更新菜单请求体，只写入显式传入的字段。"""


class MenuOut(BaseModel):
    """菜单扁平信息响应模型。"""
    id: int
    parent_id: int
    type: str
    name: Optional[str] = None
    title: str
    path: Optional[str] = None
    component: Optional[str] = None
    redirect: Optional[str] = None
    active_path: Optional[str] = None
    icon: Optional[str] = None
    active_icon: Optional[str] = None
    badge_type: Optional[str] = None
    badge_content: Optional[str] = None
    badge_style: Optional[str] = None
    permission_code: Optional[str] = None
    status: int
    hidden: bool
    hide_children: bool
    hide_breadcrumb: bool
    hide_tab: bool
    keep_alive: bool
    fixed_tab: bool
    always_show: bool
    is_external: bool
    external_url: Optional[str] = None
    sort: int
    description: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
