"""
用户认证路由模块 (User Authentication Router)

功能说明：提供注册、登录、注销、令牌刷新、当前用户信息和修改密码接口
核心职责：
  - 注册新用户并绑定默认角色
  - 用户名 + 密码登录，签发访问令牌和刷新令牌
  - 注销时把访问令牌写入 Redis 黑名单
  - 返回当前用户的角色编码和权限编码，供前端渲染按钮
API端点：POST /register, POST /login, POST /logout, POST /refresh, GET /me, PUT /password
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, get_permission_resolver, get_token_payload
from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.redis import get_redis
from app.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    revoke_token,
    verify_password,
)
from app.models.mixins import utcnow
from app.models.user import User
from app.repositories.identity_repository import IdentityRepository
from app.schemas.auth import CurrentUser, PasswordChange, TokenRefresh, TokenResponse, UserLogin, UserRegister
from app.services.permission import PermissionResolver
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


async def _current_user_out(user: User, resolver: PermissionResolver) -> CurrentUser:
    role_codes = await resolver.resolve_role_codes(user.id)
    permissions = await resolver.resolve_permissions(user.id)
    out = CurrentUser.model_validate(user)
    out.role_codes = sorted(role_codes)
    out.permissions = sorted(permissions)
    return out


async def _token_response(user: User, resolver: PermissionResolver) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(user.id), user.username),
        refresh_token=create_refresh_token(str(user.id)),
        user=await _current_user_out(user, resolver),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """
    用户注册接口 (User Registration)

    新用户绑定默认角色，注册成功即返回令牌。

    Raises:
        ConflictError 409: 用户名或邮箱已被使用
    """
    user = await UserService(db).create_user(data.model_dump())
    return await _token_response(user, resolver)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """
    用户登录接口 (User Login)

    Raises:
        AuthenticationError 401: 用户名不存在或密码错误
        PermissionDeniedError 403: 账户已禁用
    """
    user = await IdentityRepository(db).get_user_by_username(data.username)
    if user is None or not verify_password(data.password, user.hashed_password):
        logger.info("Login failed for username %s", data.username)
        raise AuthenticationError("用户名或密码错误 (Invalid username or password)")
    if not user.is_active:
        raise PermissionDeniedError("账户已被禁用 (Account disabled)")

    user.last_login_at = utcnow()
    await db.commit()
    await db.refresh(user)
    return await _token_response(user, resolver)


@router.post("/logout")
async def logout(
    payload: dict = Depends(get_token_payload),
    redis_client=Depends(get_redis),
):
    """注销：当前访问令牌在过期前不再可用 (Revoke the current access token)"""
    await revoke_token(redis_client, payload)
    return {"message": "已退出登录 (Logged out)"}


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """
    令牌刷新接口 (Token Refresh)

    Raises:
        AuthenticationError 401: 刷新令牌无效、已过期，或用户不存在/已禁用
    """
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != REFRESH_TOKEN_TYPE:
        raise AuthenticationError("刷新令牌无效或已过期 (Invalid refresh token)")

    user_id = str(payload.get("sub", ""))
    user = await IdentityRepository(db).get_user(int(user_id)) if user_id.isdigit() else None
    if user is None or not user.is_active:
        raise AuthenticationError("用户不存在或已被禁用 (User not found or disabled)")
    return await _token_response(user, resolver)


@router.get("/me", response_model=CurrentUser)
async def me(
    user: User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """获取当前登录用户信息，附带角色编码和权限编码 (Current user with role and permission codes)"""
    return await _current_user_out(user, resolver)


@router.put("/password")
async def change_password(
    data: PasswordChange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    修改密码 (Change Password)

    Raises:
        ValidationError 422: 两次输入不一致、长度不足或原密码错误
    """
    await UserService(db).change_password(user, data.old_password, data.new_password, data.confirm_password)
    return {"message": "密码修改成功 (Password changed)"}
