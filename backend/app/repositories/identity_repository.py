"""
身份存储仓库 (Identity Store Repository)

用户、角色、菜单及 用户↔角色、角色↔菜单 关联的查询与替换封装，业务层不直接拼 ORM 语句。
所有默认查询都排除软删除的行。

Query and replace operations over users, roles, menus and their bindings.
Every default query excludes soft-deleted rows.
"""
from collections.abc import Iterable
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.menu import Menu
from app.models.role import Role, RoleMenu, UserRole
from app.models.user import User


class IdentityRepository:
    """
    身份数据仓库 (Identity data repository)

    权限解析器只依赖其中的只读方法（见 ``app.services.permission.IdentityStore``），
    其余方法供用户、角色、菜单管理使用。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── 用户 (Users) ──────────────────────────────────────────────

    async def get_user(self, user_id: int) -> User | None:
        stmt = select(User).where(User.id == user_id, User.live())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username, User.live())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def username_taken(self, username: str) -> bool:
        """用户名唯一约束覆盖已删除用户，这里不排除墓碑行 (Unique constraint also covers tombstones)"""
        stmt = select(func.count(User.id)).where(User.username == username)
        return (await self.session.execute(stmt)).scalar() > 0

    async def email_taken(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        stmt = select(func.count(User.id)).where(User.email == email)
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        return (await self.session.execute(stmt)).scalar() > 0

    async def count_live_users(self, user_ids: Iterable[int]) -> int:
        ids = set(user_ids)
        if not ids:
            return 0
        stmt = select(func.count(User.id)).where(User.id.in_(ids), User.live())
        return (await self.session.execute(stmt)).scalar()

    # ── 用户↔角色 (User ↔ Role) ─────────────────────────────────

    async def role_ids_for_user(self, user_id: int) -> List[int]:
        stmt = select(UserRole.role_id).where(UserRole.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def roles_for_users(self, user_ids: Iterable[int]) -> Dict[int, List[Role]]:
        """批量查询多个用户的未删除角色，用于用户列表展示 (Live roles keyed by user id)"""
        ids = set(user_ids)
        grouped: Dict[int, List[Role]] = {uid: [] for uid in ids}
        if not ids:
            return grouped
        stmt = (
            select(UserRole.user_id, Role)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id.in_(ids), Role.live())
            .order_by(Role.sort, Role.id)
        )
        for user_id, role in (await self.session.execute(stmt)).all():
            grouped[user_id].append(role)
        return grouped

    async def replace_user_roles(self, user_id: int, role_ids: Iterable[int]) -> None:
        """删除旧绑定并写入新绑定，由调用方负责提交 (Caller owns the commit)"""
        await self.session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        for role_id in dict.fromkeys(role_ids):
            self.session.add(UserRole(user_id=user_id, role_id=role_id))
        await self.session.flush()

    async def delete_user_bindings(self, user_id: int) -> None:
        await self.session.execute(delete(UserRole).where(UserRole.user_id == user_id))

    # ── 角色 (Roles) ────────────────────────────────────────────

    async def get_role(self, role_id: int) -> Role | None:
        stmt = select(Role).where(Role.id == role_id, Role.live())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_role_by_code(self, code: str) -> Role | None:
        stmt = select(Role).where(Role.code == code, Role.live())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def role_code_taken(self, code: str, exclude_role_id: Optional[int] = None) -> bool:
        stmt = select(func.count(Role.id)).where(Role.code == code)
        if exclude_role_id is not None:
            stmt = stmt.where(Role.id != exclude_role_id)
        return (await self.session.execute(stmt)).scalar() > 0

    async def roles_by_ids(self, role_ids: Iterable[int]) -> List[Role]:
        ids = set(role_ids)
        if not ids:
            return []
        stmt = select(Role).where(Role.id.in_(ids), Role.live())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def user_ids_for_role(self, role_id: int) -> List[int]:
        stmt = select(UserRole.user_id).where(UserRole.role_id == role_id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def delete_role_bindings(self, role_id: int) -> None:
        await self.session.execute(delete(RoleMenu).where(RoleMenu.role_id == role_id))
        await self.session.execute(delete(UserRole).where(UserRole.role_id == role_id))

    # ── 角色↔菜单 (Role ↔ Menu) ─────────────────────────────────

    async def menu_ids_for_roles(self, role_ids: Iterable[int]) -> List[int]:
        ids = set(role_ids)
        if not ids:
            return []
        stmt = select(RoleMenu.menu_id).where(RoleMenu.role_id.in_(ids)).distinct()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def menus_for_roles(self, role_ids: Iterable[int]) -> Dict[int, List[Menu]]:
        """批量查询多个角色绑定的未删除菜单 (Live menus keyed by role id)"""
        ids = set(role_ids)
        grouped: Dict[int, List[Menu]] = {rid: [] for rid in ids}
        if not ids:
            return grouped
        stmt = (
            select(RoleMenu.role_id, Menu)
            .join(Menu, Menu.id == RoleMenu.menu_id)
            .where(RoleMenu.role_id.in_(ids), Menu.live())
            .order_by(Menu.sort, Menu.id)
        )
        for role_id, menu in (await self.session.execute(stmt)).all():
            grouped[role_id].append(menu)
        return grouped

    async def replace_role_menus(self, role_id: int, menu_ids: Iterable[int]) -> None:
        """删除旧绑定并写入新绑定，由调用方负责提交 (Caller owns the commit)"""
        await self.session.execute(delete(RoleMenu).where(RoleMenu.role_id == role_id))
        for menu_id in dict.fromkeys(menu_ids):
            self.session.add(RoleMenu(role_id=role_id, menu_id=menu_id))
        await self.session.flush()

    # ── 菜单 (Menus) ────────────────────────────────────────────

    async def get_menu(self, menu_id: int) -> Menu | None:
        stmt = select(Menu).where(Menu.id == menu_id, Menu.live())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def menus_by_ids(self, menu_ids: Iterable[int]) -> List[Menu]:
        ids = set(menu_ids)
        if not ids:
            return []
        stmt = select(Menu).where(Menu.id.in_(ids), Menu.live())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_menus(
        self,
        status: Optional[int] = None,
        hidden: Optional[bool] = None,
    ) -> Sequence[Menu]:
        """按 (sort, id) 升序返回未删除菜单，树构建依赖这个顺序 (Ordered by sort then id)"""
        stmt = select(Menu).where(Menu.live())
        if status is not None:
            stmt = stmt.where(Menu.status == status)
        if hidden is not None:
            stmt = stmt.where(Menu.hidden.is_(hidden))
        stmt = stmt.order_by(Menu.sort, Menu.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_children(self, menu_id: int, menu_type: Optional[str] = None) -> int:
        """未删除的直接子节点数，可按类型过滤 (Live direct children, optionally of one type)"""
        stmt = select(func.count(Menu.id)).where(Menu.parent_id == menu_id, Menu.live())
        if menu_type is not None:
            stmt = stmt.where(Menu.type == menu_type)
        return (await self.session.execute(stmt)).scalar()

    async def permission_code_taken(self, code: str, exclude_menu_id: Optional[int] = None) -> bool:
        """唯一约束覆盖已删除菜单，这里不排除墓碑行 (Unique constraint also covers tombstones)"""
        stmt = select(func.count(Menu.id)).where(Menu.permission_code == code)
        if exclude_menu_id is not None:
            stmt = stmt.where(Menu.id != exclude_menu_id)
        return (await self.session.execute(stmt)).scalar() > 0

    async def parent_id_of(self, menu_id: int) -> Optional[int]:
        """查询任意菜单（含已删除）的父节点，用于祖先链遍历 (Parent of any menu, for ancestor walks)"""
        stmt = select(Menu.parent_id).where(Menu.id == menu_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def delete_menu_bindings(self, menu_id: int) -> None:
        await self.session.execute(delete(RoleMenu).where(RoleMenu.menu_id == menu_id))
