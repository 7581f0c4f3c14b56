"""
角色与关联模型 (Role and Binding Models)

角色表以及 用户↔角色、角色↔菜单 两张多对多关联表。
关联表没有独立生命周期，每一对 (user, role) / (role, menu) 唯一。

The role table plus the user↔role and role↔menu join tables. Join rows have no
lifecycle of their own; each (user, role) and (role, menu) pair is unique.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, utcnow

ROLE_ENABLED = 1
ROLE_DISABLED = 0


class Role(TimestampMixin, SoftDeleteMixin, Base):
    """
    角色表 (Role Table)

    只有启用且未删除的角色参与权限计算。保留编码的角色不可删除。
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)  # 主键 ID (Primary Key ID)
    name: Mapped[str] = mapped_column(String(50), nullable=False)  # 角色名称 (Role Name)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)  # 角色编码，如 admin (Role Code)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # 描述 (Description)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=ROLE_ENABLED)  # 1 启用 / 0 禁用 (1 enabled / 0 disabled)
    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 排序 (Sort Order)


class UserRole(Base):
    """用户角色关联表 (User ↔ Role Binding)"""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class RoleMenu(Base):
    """角色菜单关联表 (Role ↔ Menu Binding)"""
    __tablename__ = "role_menus"
    __table_args__ = (UniqueConstraint("role_id", "menu_id", name="uq_role_menus_role_menu"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    menu_id: Mapped[int] = mapped_column(Integer, ForeignKey("menus.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
