"""
权限解析服务 (Permission Resolver Service)

功能描述 (Description):
    把一个用户映射为其有效权限编码集合和有效角色编码集合。
    Maps a user to the effective permission-code set and role-code set.

解析步骤 (Resolution Steps):
    1. 查询用户绑定的角色 ID，为空则返回空集合
    2. 过滤出启用且未删除的角色
    3. 查询这些角色绑定的菜单 ID（去重，多个角色指向同一菜单只算一次）
    4. 取其中启用、未删除且 permission_code 非空的菜单
    5. 返回这些菜单的权限编码

失败策略 (Failure Policy):
    用户没有角色/权限是正常的空结果，不是错误。身份存储不可达时记录异常并返回空集合，
    由访问闸门把空集合当作拒绝，绝不会因为解析故障而放行。
    Having no roles is a legitimate empty result. A store fault is logged and turned
    into an empty result so that the gate denies instead of allowing.

每次调用都重新读取当前数据，不缓存：角色或菜单变更在下一个请求即生效。
Nothing is cached: a role or menu change takes effect on the very next request.
"""
import logging
from collections.abc import Iterable
from typing import Any, List, Optional, Protocol, Sequence, Set

logger = logging.getLogger(__name__)

STATUS_ENABLED = 1


class IdentityStore(Protocol):
    """权限解析所需的只读身份存储接口 (Read-only identity store used by the resolver)"""

    async def get_user(self, user_id: int) -> Optional[Any]: ...

    async def role_ids_for_user(self, user_id: int) -> List[int]: ...

    async def roles_by_ids(self, role_ids: Iterable[int]) -> Sequence[Any]: ...

    async def menu_ids_for_roles(self, role_ids: Iterable[int]) -> List[int]: ...

    async def menus_by_ids(self, menu_ids: Iterable[int]) -> Sequence[Any]: ...


def _is_active(record: Any) -> bool:
    return getattr(record, "status", None) == STATUS_ENABLED and getattr(record, "deleted_at", None) is None


class PermissionResolver:
    """
    权限解析器 (Permission Resolver)

    无状态，只持有身份存储句柄；并发请求可以各自构造实例。
    """

    def __init__(self, store: IdentityStore):
        self.store = store

    async def _active_roles(self, user_id: int) -> List[Any]:
        user = await self.store.get_user(user_id)
        # 已禁用或已删除用户的旧令牌：一律解析为空
        if user is None or not _is_active(user):
            return []

        role_ids = await self.store.role_ids_for_user(user_id)
        if not role_ids:
            return []

        roles = await self.store.roles_by_ids(role_ids)
        return [role for role in roles if _is_active(role)]

    async def _visible_menu_ids(self, user_id: int) -> Set[int]:
        roles = await self._active_roles(user_id)
        if not roles:
            return set()
        return set(await self.store.menu_ids_for_roles([role.id for role in roles]))

    async def resolve_role_codes(self, user_id: int) -> Set[str]:
        """返回用户当前有效的角色编码 (Effective role codes)"""
        try:
            roles = await self._active_roles(user_id)
        except Exception:
            logger.exception("Role resolution failed for user %s, resolving to empty set", user_id)
            return set()
        return {role.code for role in roles}

    async def visible_menu_ids(self, user_id: int) -> Set[int]:
        """返回用户有效角色绑定的菜单 ID，供用户导航树使用 (Menu ids reachable through active roles)"""
        try:
            return await self._visible_menu_ids(user_id)
        except Exception:
            logger.exception("Menu id resolution failed for user %s, resolving to empty set", user_id)
            return set()

    async def resolve_permissions(self, user_id: int) -> Set[str]:
        """返回用户当前有效的权限编码 (Effective permission codes)"""
        try:
            menu_ids = await self._visible_menu_ids(user_id)
            if not menu_ids:
                return set()
            menus = await self.store.menus_by_ids(menu_ids)
        except Exception:
            logger.exception("Permission resolution failed for user %s, resolving to empty set", user_id)
            return set()

        codes = set()
        for menu in menus:
            if not _is_active(menu):
                continue
            code = (menu.permission_code or "").strip()
            if code:
                codes.add(code)
        return codes
