"""
用户管理相关的请求/响应数据模型。

定义用户创建、更新、状态切换、密码重置、角色分配等操作的 Schema。
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class RoleBrief(BaseModel):
    """用户列表中展示的角色摘要。"""
    id: int
    name: str
    code: str

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """创建用户请求体，未指定 role_ids 时使用默认角色。"""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=128)
    nickname: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    avatar: Optional[str] = None
    status: int = 1
    role_ids: Optional[List[int]] = None


class UserUpdate(BaseModel):
    """更新用户请求体，所有字段可选；传入 role_ids 时整体替换角色。"""
    nickname: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    avatar: Optional[str] = None
    status: Optional[int] = None
    role_ids: Optional[List[int]] = None


class UserStatusUpdate(BaseModel):
    """启用/禁用请求体。"""
    status: int


class PasswordReset(BaseModel):
    """重置密码请求体。"""
    new_password: str


class RoleAssign(BaseModel):
    """分配角色请求体，整体替换。"""
    role_ids: List[int]


class UserOut(BaseModel):
    """用户信息响应模型。"""
    id: int
    username: str
    nickname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    status: int
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserWithRoles(UserOut):
    """附带角色的用户信息。"""
    roles: List[RoleBrief] = []


class UserListResponse(BaseModel):
    """用户列表分页响应。"""
    items: List[UserWithRoles]
    total: int
    page: int
    page_size: int
