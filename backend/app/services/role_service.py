"""
角色管理服务 (Role Management Service)

角色的增删改查与角色↔菜单绑定替换。替换绑定在同一事务内完成（删除旧绑定、写入新绑定、提交），
并发的权限解析要么看到旧集合，要么看到新集合，不会看到中间状态。

Role CRUD and replacement of role↔menu bindings. The replacement runs inside one
transaction so a concurrent resolution sees either the old or the new set.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.role import ROLE_DISABLED, ROLE_ENABLED, Role
from app.repositories.identity_repository import IdentityRepository

logger = logging.getLogger(__name__)

ROLE_CODE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
ROLE_FIELDS = ("name", "code", "description", "status", "sort")
ROLE_NOT_NULL_FIELDS = ("name", "code", "status", "sort")


def normalize_ids(raw_ids: Iterable[Any]) -> List[int]:
    """去重并丢弃非正整数，保持首次出现的顺序 (De-duplicate, keep positive ints, preserve order)"""
    ids: List[int] = []
    for value in raw_ids:
        if isinstance(value, bool):
            continue
        try:
            number = int(value)
        except (TypeError, ValueError):
            continue
        if number > 0 and number not in ids:
            ids.append(number)
    return ids


class RoleService:
    """角色服务 (Role service)"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = IdentityRepository(session)

    async def list_enabled_roles(self) -> List[Role]:
        """启用的角色，用于下拉选择 (Enabled roles for dropdowns)"""
        stmt = select(Role).where(Role.live(), Role.status == ROLE_ENABLED).order_by(Role.sort, Role.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def list_roles(
        self,
        keyword: Optional[str] = None,
        status: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Role], int, Dict[int, list]]:
        filters = [Role.live()]
        if keyword:
            like = f"%{keyword}%"
            filters.append(or_(Role.name.like(like), Role.code.like(like)))
        if status is not None:
            filters.append(Role.status == status)

        total = (await self.session.execute(select(func.count(Role.id)).where(*filters))).scalar()
        stmt = (
            select(Role).where(*filters).order_by(Role.sort, Role.id)
            .offset((page - 1) * page_size).limit(page_size)
        )
        roles = list((await self.session.execute(stmt)).scalars().all())
        menus = await self.repo.menus_for_roles([role.id for role in roles])
        return roles, total, menus

    async def get_role(self, role_id: int) -> Role:
        role = await self.repo.get_role(role_id)
        if role is None:
            raise NotFoundError("角色不存在 (Role not found)")
        return role

    async def menu_ids_of(self, role_id: int) -> List[int]:
        menus = await self.repo.menus_for_roles([role_id])
        return [menu.id for menu in menus[role_id]]

    async def _validate_code(self, code: str, exclude_role_id: Optional[int] = None) -> None:
        if not ROLE_CODE_PATTERN.match(code or ""):
            raise ValidationError(
                "角色编码只能包含小写字母、数字和下划线，且以字母开头 (role code must match ^[a-z][a-z0-9_]*$)",
                detail="invalid_role_code",
            )
        if await self.repo.role_code_taken(code, exclude_role_id):
            raise ValidationError(f"角色编码已存在：{code} (role code must be unique)", detail="duplicate_role_code")

    @staticmethod
    def _validate_fields(values: Mapping[str, Any]) -> None:
        """非空列拒绝显式 null，状态只能是 0/1 (Reject explicit nulls, status must be 0 or 1)"""
        for field in ROLE_NOT_NULL_FIELDS:
            if field in values and values[field] is None:
                raise ValidationError(f"{field} 不能为空 ({field} cannot be null)", detail=f"{field}_required")
        if values.get("status") is not None and values["status"] not in (ROLE_ENABLED, ROLE_DISABLED):
            raise ValidationError("状态只能是 0 或 1 (status must be 0 or 1)", detail="invalid_status")

    async def create_role(self, data: Mapping[str, Any]) -> Role:
        values = {key: value for key, value in data.items() if key in ROLE_FIELDS}
        self._validate_fields(values)
        await self._validate_code(values.get("code"))
        role = Role(**values)
        self.session.add(role)
        await self.session.commit()
        await self.session.refresh(role)
        logger.info("Role %s (%s) created", role.id, role.code)
        return role

    async def update_role(self, role_id: int, data: Mapping[str, Any]) -> Role:
        role = await self.get_role(role_id)
        updates = {key: value for key, value in data.items() if key in ROLE_FIELDS}
        self._validate_fields(updates)
        if "code" in updates and updates["code"] != role.code:
            if role.code in settings.reserved_role_codes:
                raise ConflictError(f"系统保留角色的编码不能修改：{role.code} (reserved role codes are immutable)")
            await self._validate_code(updates["code"], exclude_role_id=role_id)

        for field, value in updates.items():
            setattr(role, field, value)
        await self.session.commit()
        await self.session.refresh(role)
        return role

    async def delete_role(self, role_id: int) -> None:
        role = await self.get_role(role_id)
        if role.code in settings.reserved_role_codes:
            raise ConflictError(f"系统保留角色不能删除：{role.code} (reserved roles cannot be deleted)")

        try:
            role.soft_delete()
            await self.repo.delete_role_bindings(role_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Role %s (%s) deleted", role_id, role.code)

    async def assign_menus(self, role_id: int, raw_menu_ids: Iterable[Any]) -> List[int]:
        """
        替换角色的全部菜单绑定 (Replace every menu binding of a role)

        Args:
            role_id: 角色 ID
            raw_menu_ids: 新的菜单 ID 集合，去重并丢弃非正整数后必须全部是未删除菜单

        Returns:
            List[int]: 实际写入的菜单 ID

        Raises:
            NotFoundError: 角色不存在
            ValidationError: 包含不存在的菜单 ID
        """
        await self.get_role(role_id)
        menu_ids = normalize_ids(raw_menu_ids)

        found = {menu.id for menu in await self.repo.menus_by_ids(menu_ids)}
        invalid = [menu_id for menu_id in menu_ids if menu_id not in found]
        if invalid:
            raise ValidationError(
                f"菜单不存在：{', '.join(str(i) for i in invalid)} (every menu id must reference a live menu)",
                detail="invalid_menu_ids",
            )

        try:
            await self.repo.replace_role_menus(role_id, menu_ids)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("Replacing menus of role %s failed, rolled back", role_id)
            raise

        logger.info("Role %s now bound to %d menus", role_id, len(menu_ids))
        return menu_ids
