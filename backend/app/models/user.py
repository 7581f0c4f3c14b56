"""
用户模型 (User Model)

定义系统用户表结构：登录名、密码哈希、昵称与联系方式、启用状态。
用户的权限不直接存储在本表，而是经 用户→角色→菜单 关联计算得出。

Defines the system user table: login name, password hash, nickname and contact
fields, enabled status. Permissions are not stored here; they are derived through
the user → role → menu bindings.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin

USER_ENABLED = 1
USER_DISABLED = 0


class User(TimestampMixin, SoftDeleteMixin, Base):
    """
    用户表 (User Table)

    存储系统中所有用户的账户信息。删除为软删除，已删除用户不能登录，
    其已签发的令牌也会在下一次请求时被拒绝。

    Stores account information for every user. Deletion is a soft delete; a deleted
    user cannot log in and previously issued tokens are rejected on the next request.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)  # 主键 ID (Primary Key ID)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)  # 登录名 (Login Name)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)  # 哈希后的密码 (Hashed Password)
    nickname: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # 昵称 (Nickname)
    email: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)  # 邮箱 (Email)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # 手机号 (Phone)
    avatar: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # 头像 URL (Avatar URL)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=USER_ENABLED)  # 1 启用 / 0 禁用 (1 enabled / 0 disabled)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # 最后登录时间 (Last Login Time)

    @property
    def is_active(self) -> bool:
        """启用且未删除 (Enabled and not tombstoned)"""
        return self.status == USER_ENABLED and self.deleted_at is None
