"""
内置数据种子模块 (Built-in Seed Data Module)

功能描述 (Description):
    应用启动时写入管理后台运行所需的最小数据集，保证首次启动即可登录使用。

内置数据 (Built-in Data):
    1. 角色：super_admin / admin / user
    2. 菜单：仪表盘、业务管理（文章、任务）、系统管理（用户、角色、菜单、操作日志）及按钮权限
    3. 角色↔菜单：超级管理员全部；管理员不含菜单管理；普通用户仪表盘 + 业务管理
    4. 账号：superadmin / admin / user，初始密码取 settings.seed_default_password

幂等保证 (Idempotency):
    角色按 code、菜单按 name、账号按 username 去重；已存在的绑定不会重复写入，
    管理员在后台修改过的数据不会被覆盖。
"""
import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import hash_password
from app.models.menu import MENU_TYPE_BUTTON, MENU_TYPE_DIRECTORY, MENU_TYPE_MENU, ROOT_PARENT_ID, Menu
from app.models.role import Role, RoleMenu, UserRole
from app.models.user import User

logger = logging.getLogger(__name__)

BUILTIN_ROLES = [
    {"name": "超级管理员", "code": "super_admin", "description": "拥有系统全部权限", "sort": 1},
    {"name": "管理员", "code": "admin", "description": "系统管理员，不含菜单管理", "sort": 2},
    {"name": "普通用户", "code": "user", "description": "只能管理自己的业务数据", "sort": 3},
]


def _buttons(resource: str, actions: List[tuple]) -> List[dict]:
    # 名称如 ArticleCreate、UserAssignRole (Names like ArticleCreate)
    return [
        {"type": MENU_TYPE_BUTTON,
         "name": resource.capitalize() + "".join(part.capitalize() for part in action.split("_")),
         "title": title, "permission_code": f"{resource}:{action}", "sort": sort}
        for sort, (action, title) in enumerate(actions, start=1)
    ]


# 菜单树定义，children 按顺序写入 (Menu tree definition, children seeded in order)
BUILTIN_MENUS = [
    {
        "type": MENU_TYPE_MENU, "name": "Dashboard", "title": "仪表盘", "path": "/dashboard",
        "component": "dashboard/index", "icon": "Odometer", "permission_code": "dashboard:view",
        "keep_alive": True, "sort": 1,
    },
    {
        "type": MENU_TYPE_DIRECTORY, "name": "Business", "title": "业务管理", "path": "/business",
        "component": "Layout", "redirect": "/business/article", "icon": "Briefcase",
        "always_show": True, "sort": 2,
        "children": [
            {
                "type": MENU_TYPE_MENU, "name": "Article", "title": "文章管理", "path": "/business/article",
                "component": "business/article-manage/index", "icon": "Document",
                "permission_code": "article:view", "keep_alive": True, "sort": 1,
                "children": _buttons("article", [
                    ("create", "新增文章"), ("edit", "编辑文章"), ("delete", "删除文章"), ("publish", "发布文章"),
                ]),
            },
            {
                "type": MENU_TYPE_MENU, "name": "Task", "title": "任务管理", "path": "/business/task",
                "component": "business/task-manage/index", "icon": "List",
                "permission_code": "task:view", "keep_alive": True, "sort": 2,
                "children": _buttons("task", [
                    ("create", "新增任务"), ("edit", "编辑任务"), ("delete", "删除任务"), ("assign", "指派任务"),
                ]),
            },
        ],
    },
    {
        "type": MENU_TYPE_DIRECTORY, "name": "System", "title": "系统管理", "path": "/system",
        "component": "Layout", "redirect": "/system/user", "icon": "Setting",
        "always_show": True, "sort": 3,
        "children": [
            {
                "type": MENU_TYPE_MENU, "name": "User", "title": "用户管理", "path": "/system/user",
                "component": "system/user-manage/index", "icon": "User",
                "permission_code": "user:view", "keep_alive": True, "sort": 1,
                "children": _buttons("user", [
                    ("create", "新增用户"), ("edit", "编辑用户"), ("delete", "删除用户"), ("assign_role", "分配角色"),
                ]),
            },
            {
                "type": MENU_TYPE_MENU, "name": "Role", "title": "角色管理", "path": "/system/role",
                "component": "system/role-manage/index", "icon": "UserFilled",
                "permission_code": "role:view", "keep_alive": True, "sort": 2,
                "children": _buttons("role", [
                    ("create", "新增角色"), ("edit", "编辑角色"), ("delete", "删除角色"), ("assign_menu", "分配菜单"),
                ]),
            },
            {
                "type": MENU_TYPE_MENU, "name": "Menu", "title": "菜单管理", "path": "/system/menu",
                "component": "system/menu-manage/index", "icon": "Menu",
                "permission_code": "menu:view", "keep_alive": True, "sort": 3,
                "children": _buttons("menu", [
                    ("create", "新增菜单"), ("edit", "编辑菜单"), ("delete", "删除菜单"),
                ]),
            },
            {
                "type": MENU_TYPE_MENU, "name": "OperationLog", "title": "操作日志", "path": "/system/operation-log",
                "component": "system/operation-log/index", "icon": "Tickets",
                "permission_code": "log:view", "keep_alive": True, "sort": 4,
            },
        ],
    },
]

# 各角色绑定的菜单子树根（按 name），子树内所有节点一并绑定 (Subtree roots bound per role)
ROLE_MENU_ROOTS = {
    "super_admin": ["Dashboard", "Business", "System"],
    "admin": ["Dashboard", "Business", "User", "Role", "OperationLog"],
    "user": ["Dashboard", "Business"],
}

BUILTIN_USERS = [
    {"username": "superadmin", "nickname": "超级管理员", "email": "superadmin@example.com", "role": "super_admin"},
    {"username": "admin", "nickname": "管理员", "email": "admin@example.com", "role": "admin"},
    {"username": "user", "nickname": "普通用户", "email": "user@example.com", "role": "user"},
]


async def _seed_roles(session: AsyncSession) -> Dict[str, Role]:
    existing = {r.code: r for r in (await session.execute(select(Role))).scalars().all()}
    for role_data in BUILTIN_ROLES:
        if role_data["code"] not in existing:
            role = Role(**role_data)
            session.add(role)
            existing[role.code] = role
    await session.flush()
    return existing


async def _seed_menus(session: AsyncSession) -> Dict[str, Menu]:
    """按 name 去重写入菜单树，返回 name → 菜单 (Returns menus keyed by name)"""
    existing = {m.name: m for m in (await session.execute(select(Menu))).scalars().all() if m.name}

    async def add_level(items: List[dict], parent_id: int) -> None:
        for item in items:
            data = {key: value for key, value in item.items() if key != "children"}
            menu = existing.get(data["name"])
            if menu is None:
                menu = Menu(parent_id=parent_id, **data)
                session.add(menu)
                await session.flush()
                existing[menu.name] = menu
            await add_level(item.get("children", []), menu.id)

    await add_level(BUILTIN_MENUS, ROOT_PARENT_ID)
    return existing


def _subtree_names(roots: List[str]) -> List[str]:
    names: List[str] = []

    def walk(items: List[dict], inside: bool) -> None:
        for item in items:
            selected = inside or item["name"] in roots
            if selected:
                names.append(item["name"])
            walk(item.get("children", []), selected)

    walk(BUILTIN_MENUS, False)
    return names


async def _seed_role_menus(session: AsyncSession, roles: Dict[str, Role], menus: Dict[str, Menu]) -> None:
    bound = set((await session.execute(select(RoleMenu.role_id, RoleMenu.menu_id))).all())
    for role_code, roots in ROLE_MENU_ROOTS.items():
        role = roles.get(role_code)
        if role is None:
            continue
        for name in _subtree_names(roots):
            menu = menus.get(name)
            if menu is not None and (role.id, menu.id) not in bound:
                session.add(RoleMenu(role_id=role.id, menu_id=menu.id))
                bound.add((role.id, menu.id))


async def _seed_users(session: AsyncSession, roles: Dict[str, Role]) -> None:
    existing = {u.username: u for u in (await session.execute(select(User))).scalars().all()}
    for user_data in BUILTIN_USERS:
        if user_data["username"] in existing:
            continue
        user = User(
            username=user_data["username"],
            nickname=user_data["nickname"],
            email=user_data["email"],
            hashed_password=hash_password(settings.seed_default_password),
        )
        session.add(user)
        await session.flush()
        role = roles.get(user_data["role"])
        if role is not None:
            session.add(UserRole(user_id=user.id, role_id=role.id))
        logger.info("Seeded built-in account %s", user.username)


async def seed_builtin_data(session: AsyncSession) -> None:
    """
    写入内置角色、菜单、绑定和账号 (Seed built-in roles, menus, bindings and accounts)

    Args:
        session: 异步数据库会话，函数内提交
    """
    roles = await _seed_roles(session)
    menus = await _seed_menus(session)
    await _seed_role_menus(session, roles, menus)
    await _seed_users(session, roles)
    await session.commit()
