"""
认证相关请求/响应模型

定义用户注册、登录、令牌刷新、修改密码等 API 的数据结构。
"""
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserOut


class UserRegister(BaseModel):
    """用户注册请求体。"""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=128)
    nickname: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)


class UserLogin(BaseModel):
    """用户登录请求体。"""
    username: str
    password: str


class TokenRefresh(BaseModel):
    """令牌刷新请求体。"""
    refresh_token: str


class PasswordChange(BaseModel):
    """修改密码请求体。"""
    old_password: str
    new_password: str
    confirm_password: str


class CurrentUser(UserOut):
    """当前用户信息，附带角色编码和权限编码。"""
    role_codes: List[str] = []
    permissions: List[str] = []


class TokenResponse(BaseModel):
    """令牌响应体，包含访问令牌、刷新令牌和用户信息。"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[CurrentUser] = None
