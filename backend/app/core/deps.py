"""
FastAPI 依赖项模块 (FastAPI Dependencies Module)

认证与授权的依赖注入：
    - get_current_user：校验 Bearer JWT，返回未删除且启用的用户，否则 401
    - require_permissions / require_roles：声明式访问闸门，拒绝时 403
    - get_data_scope：每个请求解析一次调用者角色，供行级数据权限使用

Dependency injection for authentication and authorization: bearer JWT
authentication (401), declarative permission/role gates (403) and the per-request
data scope.
"""
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.redis import get_redis
from app.core.security import ACCESS_TOKEN_TYPE, decode_token, is_token_revoked
from app.models.user import User
from app.repositories.identity_repository import IdentityRepository
from app.services.access_gate import AccessGate, AccessKind, AccessMode
from app.services.data_scope import DataScope
from app.services.permission import PermissionResolver

logger = logging.getLogger(__name__)

# Bearer Token 认证方案；缺少令牌时由 get_current_user 统一返回 401
security = HTTPBearer(auto_error=False)


async def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    redis_client=Depends(get_redis),
) -> dict:
    """
    校验 Bearer 访问令牌并返回载荷 (Validate the bearer access token and return its claims)

    黑名单查询失败时只记录错误，不阻断请求。
    """
    if credentials is None:
        raise AuthenticationError("未提供认证令牌 (Missing bearer token)")

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("令牌无效或已过期 (Invalid or expired token)")

    try:
        revoked = await is_token_revoked(redis_client, payload)
    except Exception as e:
        logger.error("Token blacklist lookup failed: %s", e)
        revoked = False
    if revoked:
        raise AuthenticationError("令牌已注销 (Token has been revoked)")
    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    从请求头中提取并验证 JWT，返回当前登录用户 (Extract and validate JWT, return current user)

    已禁用或已删除用户的旧令牌在这里即被拒绝。
    """

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise AuthenticationError("令牌无效或已过期 (Invalid or expired token)")

    user = await IdentityRepository(db).get_user(int(user_id))
    if user is None or not user.is_active:
        raise AuthenticationError("用户不存在或已被禁用 (User not found or disabled)")
    return user


async def get_permission_resolver(db: AsyncSession = Depends(get_db)) -> PermissionResolver:
    return PermissionResolver(IdentityRepository(db))


async def get_access_gate(resolver: PermissionResolver = Depends(get_permission_resolver)) -> AccessGate:
    return AccessGate(resolver)


def _gate_dependency(codes: tuple, mode: AccessMode, kind: AccessKind):
    async def checker(
        user: User = Depends(get_current_user),
        gate: AccessGate = Depends(get_access_gate),
    ) -> User:
        decision = await gate.decide(user.id, codes, mode, kind)
        if not decision.allowed:
            logger.warning(
                "Access denied: user=%s kind=%s mode=%s required=%s missing=%s reason=%s",
                user.id, kind.value, mode.value, list(codes), sorted(decision.missing), decision.reason,
            )
            raise PermissionDeniedError(
                "权限不足 (Permission denied)",
                detail=f"requires {mode.value} of {kind.value}s: {', '.join(codes)}",
            )
        return user
    return checker


def require_permissions(*codes: str, mode: AccessMode = AccessMode.ANY):
    """
    权限编码检查依赖工厂 (Permission code check dependency factory)

    Args:
        codes: 所需权限编码，如 "user:view"
        mode: ANY 任一满足（默认）/ ALL 全部满足
    """
    return _gate_dependency(tuple(codes), mode, AccessKind.PERMISSION)


def require_roles(*codes: str, mode: AccessMode = AccessMode.ANY):
    """角色编码检查依赖工厂 (Role code check dependency factory)"""
    return _gate_dependency(tuple(codes), mode, AccessKind.ROLE)


# 预定义常用角色依赖 (Predefined common role dependencies)
get_admin_user = require_roles(*settings.admin_role_codes)  # 管理员或超级管理员 (Admin or super admin)
get_super_admin_user = require_roles(settings.super_admin_role_code)  # 仅超级管理员 (Super admin only)


async def get_data_scope(
    user: User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> DataScope:
    """当前请求的数据权限范围 (Data scope of the current request)"""
    role_codes = await resolver.resolve_role_codes(user.id)
    return DataScope(user_id=user.id, role_codes=frozenset(role_codes))
