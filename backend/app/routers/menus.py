"""
菜单管理路由 (Menu Management Router)

功能说明：当前用户的导航树、管理端菜单树和扁平列表、菜单增删改
权限控制：GET /api/v1/menus 对所有登录用户开放；其余接口仅管理员
API端点：GET /api/v1/menus, GET /api/v1/menus/tree, GET /api/v1/menus/list,
        GET/POST/PUT/DELETE /api/v1/menus/{id}
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_admin_user, get_current_user, get_permission_resolver
from app.models.user import User
from app.schemas.menu import MenuCreate, MenuOut, MenuUpdate
from app.services.menu_service import MenuService
from app.services.permission import PermissionResolver

router = APIRouter(prefix="/api/v1/menus", tags=["menus"])


@router.get("")
async def get_user_menus(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """
    当前用户的导航树 (Navigation tree of the current user)

    只包含启用、未隐藏、角色授权的菜单；没有可见子节点的目录被剪掉。
    """
    return await MenuService(db, resolver).build_user_menu_tree(user.id)


@router.get("/tree")
async def get_menu_tree(
    status: Optional[int] = Query(None, description="按状态过滤：1 启用 / 0 禁用"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """管理端完整菜单树，不剪枝 (Full admin tree, unpruned)"""
    return await MenuService(db).build_admin_menu_tree(status)


@router.get("/list", response_model=List[MenuOut])
async def list_menus(
    status: Optional[int] = Query(None),
    hidden: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """扁平菜单列表，按 (sort, id) 升序 (Flat list ordered by sort then id)"""
    return await MenuService(db).list_menus(status, hidden)


@router.get("/{menu_id}", response_model=MenuOut)
async def get_menu(
    menu_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    return await MenuService(db).get_menu(menu_id)


@router.post("", response_model=MenuOut, status_code=201)
async def create_menu(
    data: MenuCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    创建菜单 (Create a menu)

    Raises:
        NotFoundError 404: 父菜单不存在
        ValidationError 422: 类型必填字段缺失、编码格式错误或重复、按钮挂在根节点下等
    """
    return await MenuService(db).create_menu(data.model_dump(exclude_unset=True))


@router.put("/{menu_id}", response_model=MenuOut)
async def update_menu(
    menu_id: int,
    data: MenuUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    更新菜单 (Update a menu)

    Raises:
        ValidationError 422: 合并后的数据不合法，或新父节点是自身/自身的后代
    """
    return await MenuService(db).update_menu(menu_id, data.model_dump(exclude_unset=True))


@router.delete("/{menu_id}")
async def delete_menu(
    menu_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    删除菜单（软删除），同时解除角色绑定 (Soft-delete a menu and drop its role bindings)

    Raises:
        ConflictError 409: 存在子菜单
    """
    await MenuService(db).delete_menu(menu_id)
    return {"message": "菜单已删除 (Menu deleted)"}
