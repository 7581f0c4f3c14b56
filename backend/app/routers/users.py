"""
用户管理路由 (User Management Router)

功能说明：用户的增删改查、启用/禁用、密码重置和角色分配
权限控制：每个接口声明所需的权限编码（user:view / user:create / user:edit / user:delete / user:assign_role）
特殊保护：不能禁用或删除自己；系统内置账号不能删除
API端点：GET/POST/PUT/DELETE /api/v1/users, PUT /api/v1/users/{id}/status,
        PUT /api/v1/users/{id}/password, PUT /api/v1/users/{id}/roles
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_permissions
from app.models.user import User
from app.schemas.user import (
    PasswordReset,
    RoleBrief,
    RoleAssign,
    UserCreate,
    UserListResponse,
    UserStatusUpdate,
    UserUpdate,
    UserWithRoles,
)
from app.services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _with_roles(user: User, roles) -> UserWithRoles:
    out = UserWithRoles.model_validate(user)
    out.roles = [RoleBrief.model_validate(role) for role in roles]
    return out


@router.get("", response_model=UserListResponse)
async def list_users(
    keyword: Optional[str] = Query(None, description="按用户名、昵称、邮箱、手机号模糊搜索"),
    status: Optional[int] = Query(None, description="按状态过滤：1 启用 / 0 禁用"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:view")),
):
    """
    分页获取用户列表 (Paginated user list)

    Returns:
        UserListResponse: 每个用户附带其角色
    """
    users, total, roles = await UserService(db).list_users(keyword, status, page, page_size)
    return UserListResponse(
        items=[_with_roles(user, roles.get(user.id, [])) for user in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{user_id}", response_model=UserWithRoles)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:view")),
):
    service = UserService(db)
    user = await service.get_user(user_id)
    return _with_roles(user, await service.roles_of(user_id))


@router.post("", response_model=UserWithRoles, status_code=201)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:create")),
):
    """
    创建用户 (Create a user)

    Raises:
        ConflictError 409: 用户名或邮箱已存在
        ValidationError 422: role_ids 中有不存在的角色
    """
    service = UserService(db)
    user = await service.create_user(data.model_dump(exclude={"role_ids"}), data.role_ids)
    return _with_roles(user, await service.roles_of(user.id))


@router.put("/{user_id}", response_model=UserWithRoles)
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:edit")),
):
    """更新用户资料；传入 role_ids 时整体替换角色 (Update profile, optionally replacing roles)"""
    service = UserService(db)
    user = await service.update_user(
        user_id, data.model_dump(exclude_unset=True, exclude={"role_ids"}), data.role_ids
    )
    return _with_roles(user, await service.roles_of(user_id))


@router.put("/{user_id}/status", response_model=UserWithRoles)
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    operator: User = Depends(require_permissions("user:edit")),
):
    """启用/禁用用户，不能禁用自己 (Enable or disable; self-disable is refused)"""
    service = UserService(db)
    user = await service.update_status(user_id, data.status, operator.id)
    return _with_roles(user, await service.roles_of(user_id))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    operator: User = Depends(require_permissions("user:delete")),
):
    """
    删除用户（软删除） (Soft-delete a user)

    Raises:
        ConflictError 409: 删除自己或系统内置账号
    """
    await UserService(db).delete_user(user_id, operator.id)
    return {"message": "用户已删除 (User deleted)"}


@router.put("/{user_id}/password")
async def reset_password(
    user_id: int,
    data: PasswordReset,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:edit")),
):
    """管理员重置用户密码 (Admin password reset)"""
    await UserService(db).reset_password(user_id, data.new_password)
    return {"message": "密码已重置 (Password reset)"}


@router.put("/{user_id}/roles")
async def assign_roles(
    user_id: int,
    data: RoleAssign,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permissions("user:assign_role")),
):
    """整体替换用户的角色 (Replace every role of a user)"""
    role_ids = await UserService(db).assign_roles(user_id, data.role_ids)
    return {"user_id": user_id, "role_ids": role_ids}
