"""
访问闸门 (Access Gate)

请求级的权限/角色判定：给定所需编码和模式（ALL 全部满足 / ANY 任一满足），返回放行或拒绝。
路由层通过 ``app.core.deps.require_permissions`` / ``require_roles`` 声明式使用。

Request-time predicate over required permission or role codes with ALL/ANY mode.
Routes use it declaratively through ``app.core.deps.require_permissions`` and
``require_roles``.

拒绝规则 (Deny Rules):
    - 未认证（无用户 ID）直接拒绝
    - 所需编码为空视为配置错误，拒绝，避免误开放的路由
    - 解析器故障时解析结果为空，同样拒绝
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Sequence, Set

from app.core.config import settings
from app.services.permission import PermissionResolver

logger = logging.getLogger(__name__)


class AccessMode(str, Enum):
    """ALL：全部满足；ANY：任一满足 (ALL requires every code, ANY at least one)"""
    ALL = "all"
    ANY = "any"


class AccessKind(str, Enum):
    PERMISSION = "permission"
    ROLE = "role"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    missing: FrozenSet[str] = field(default_factory=frozenset)
    reason: str = ""


def evaluate(held: Set[str], required: Iterable[str], mode: AccessMode) -> AccessDecision:
    """在已解析出的编码集合上判定 ALL/ANY (Pure ALL/ANY evaluation over a resolved set)"""
    required_set = frozenset(code for code in required if code)
    if not required_set:
        return AccessDecision(False, reason="empty requirement")

    missing = required_set - held
    if mode == AccessMode.ALL:
        return AccessDecision(not missing, missing=frozenset(missing), reason="" if not missing else "missing codes")
    allowed = len(missing) < len(required_set)
    return AccessDecision(allowed, missing=frozenset(missing), reason="" if allowed else "no matching code")


class AccessGate:
    """
    访问闸门 (Access Gate)

    每次判定都重新解析，不缓存结果。
    """

    def __init__(
        self,
        resolver: PermissionResolver,
        admin_role_codes: Optional[Sequence[str]] = None,
        super_admin_role_code: Optional[str] = None,
    ):
        self.resolver = resolver
        self.admin_role_codes = tuple(admin_role_codes or settings.admin_role_codes)
        self.super_admin_role_code = super_admin_role_code or settings.super_admin_role_code

    async def decide(
        self,
        user_id: Optional[int],
        required: Iterable[str],
        mode: AccessMode = AccessMode.ANY,
        kind: AccessKind = AccessKind.PERMISSION,
    ) -> AccessDecision:
        required = list(required)
        if user_id is None:
            return AccessDecision(False, missing=frozenset(required), reason="unauthenticated")
        if not any(required):
            # 路由声明了空的权限要求，属于配置错误
            logger.error("Access check for user %s declared no required %s codes, denying", user_id, kind.value)
            return AccessDecision(False, reason="empty requirement")

        try:
            if kind == AccessKind.ROLE:
                held = await self.resolver.resolve_role_codes(user_id)
            else:
                held = await self.resolver.resolve_permissions(user_id)
        except Exception:
            logger.exception("Access check for user %s failed, denying", user_id)
            return AccessDecision(False, missing=frozenset(required), reason="resolver fault")

        return evaluate(held, required, mode)

    async def check_access(
        self,
        user_id: Optional[int],
        required: Iterable[str],
        mode: AccessMode = AccessMode.ANY,
        kind: AccessKind = AccessKind.PERMISSION,
    ) -> bool:
        decision = await self.decide(user_id, required, mode, kind)
        return decision.allowed

    async def is_admin(self, user_id: Optional[int]) -> bool:
        return await self.check_access(user_id, self.admin_role_codes, AccessMode.ANY, AccessKind.ROLE)

    async def is_super_admin(self, user_id: Optional[int]) -> bool:
        return await self.check_access(user_id, [self.super_admin_role_code], AccessMode.ANY, AccessKind.ROLE)
