"""
角色管理路由 (Role Management Router)

功能说明：角色的增删改查和角色↔菜单绑定替换
权限控制：GET /all 对所有登录用户开放（下拉选择）；其余接口仅管理员
特殊保护：系统保留角色不能删除，编码不能修改
API端点：GET /api/v1/roles/all, GET/POST/PUT/DELETE /api/v1/roles, PUT /api/v1/roles/{id}/menus
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_admin_user, get_current_user
from app.models.user import User
from app.schemas.role import (
    MenuAssign,
    MenuBrief,
    RoleCreate,
    RoleDetail,
    RoleListResponse,
    RoleOut,
    RoleUpdate,
    RoleWithMenus,
)
from app.services.role_service import RoleService

router = APIRouter(prefix="/api/v1/roles", tags=["roles"])


@router.get("/all", response_model=List[RoleOut])
async def list_enabled_roles(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """启用的角色列表，供下拉选择 (Enabled roles for dropdowns)"""
    return await RoleService(db).list_enabled_roles()


@router.get("", response_model=RoleListResponse)
async def list_roles(
    keyword: Optional[str] = Query(None, description="按名称或编码模糊搜索"),
    status: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    roles, total, menus = await RoleService(db).list_roles(keyword, status, page, page_size)
    items = []
    for role in roles:
        item = RoleWithMenus.model_validate(role)
        item.menus = [MenuBrief.model_validate(menu) for menu in menus.get(role.id, [])]
        items.append(item)
    return RoleListResponse(items=items, total=total, page=page, page_size=page_size)


async def _detail(service: RoleService, role) -> RoleDetail:
    detail = RoleDetail.model_validate(role)
    detail.menu_ids = await service.menu_ids_of(role.id)
    return detail


@router.get("/{role_id}", response_model=RoleDetail)
async def get_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """角色详情，附带已绑定的菜单 ID (Role detail with bound menu ids)"""
    service = RoleService(db)
    return await _detail(service, await service.get_role(role_id))


@router.post("", response_model=RoleDetail, status_code=201)
async def create_role(
    data: RoleCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    创建角色 (Create a role)

    Raises:
        ValidationError 422: 编码格式不正确或已存在
    """
    service = RoleService(db)
    return await _detail(service, await service.create_role(data.model_dump()))


@router.put("/{role_id}", response_model=RoleDetail)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    service = RoleService(db)
    return await _detail(service, await service.update_role(role_id, data.model_dump(exclude_unset=True)))


@router.delete("/{role_id}")
async def delete_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    删除角色（软删除），同时解除用户和菜单绑定 (Soft-delete a role and drop its bindings)

    Raises:
        ConflictError 409: 系统保留角色
    """
    await RoleService(db).delete_role(role_id)
    return {"message": "角色已删除 (Role deleted)"}


@router.put("/{role_id}/menus")
async def assign_menus(
    role_id: int,
    data: MenuAssign,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    整体替换角色的菜单绑定，原子操作 (Atomically replace every menu binding of a role)

    Returns:
        dict: role_id 和实际写入的 menu_ids
    """
    menu_ids = await RoleService(db).assign_menus(role_id, data.menu_ids)
    return {"role_id": role_id, "menu_ids": menu_ids}
