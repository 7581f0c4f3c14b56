"""
角色管理相关的请求/响应数据模型。
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    """创建角色请求体。"""
    name: str = Field(min_length=1, max_length=50)
    code: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=255)
    status: int = 1
    sort: int = 0


class RoleUpdate(BaseModel):
    """更新角色请求体，所有字段可选。"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=255)
    status: Optional[int] = None
    sort: Optional[int] = None


class MenuAssign(BaseModel):
    """分配菜单请求体，整体替换；非正整数 ID 会被忽略。"""
    menu_ids: List[int]


class MenuBrief(BaseModel):
    """角色列表中展示的菜单摘要。"""
    id: int
    title: str
    type: str
    permission_code: Optional[str] = None

    model_config = {"from_attributes": True}


class RoleOut(BaseModel):
    """角色信息响应模型。"""
    id: int
    name: str
    code: str
    description: Optional[str] = None
    status: int
    sort: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoleWithMenus(RoleOut):
    """附带菜单的角色信息。"""
    menus: List[MenuBrief] = []


class RoleDetail(RoleOut):
    """角色详情，附带已绑定的菜单 ID。"""
    menu_ids: List[int] = []


class RoleListResponse(BaseModel):
    """角色列表分页响应。"""
    items: List[RoleWithMenus]
    total: int
    page: int
    page_size: int
