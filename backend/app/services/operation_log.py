"""
操作日志服务 (Operation Log Service)

写操作的操作日志由中间件自动写入，这里提供：
    - 敏感参数脱敏（密码、令牌等替换为 ******）
    - 按路径前缀解析模块、按 HTTP 方法解析动作
    - 日志写入、分页查询与按天数清理

Sanitizing, classification, persistence, query and purge of operation logs.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.operation_log import OperationLog

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
MASK = "******"

SENSITIVE_KEYS = frozenset({
    "password", "old_password", "new_password", "confirm_password",
    "oldpassword", "newpassword", "confirmpassword",
    "token", "access_token", "refresh_token", "accesstoken", "refreshtoken",
})

# 路由前缀 → 模块 (Path prefix → module)
MODULE_MAP = {
    "/auth": "auth",
    "/users": "user",
    "/roles": "role",
    "/menus": "menu",
    "/articles": "article",
    "/tasks": "task",
    "/notifications": "notification",
}

ACTION_MAP = {
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}

# 特殊路由的动作和描述 (Special routes: action and description)
SPECIAL_ROUTES = {
    ("POST", "/auth/login"): ("login", "用户登录"),
    ("POST", "/auth/logout"): ("logout", "用户登出"),
    ("POST", "/auth/register"): ("register", "用户注册"),
    ("POST", "/auth/refresh"): ("refresh", "刷新令牌"),
    ("PUT", "/auth/password"): ("change_password", "修改密码"),
}

ACTION_LABELS = {"create": "新增", "update": "更新", "delete": "删除"}


def sanitize_params(params: Any) -> Any:
    """递归脱敏，键名不区分大小写 (Recursively mask sensitive keys, case-insensitive)"""
    if isinstance(params, dict):
        return {
            key: MASK if str(key).lower() in SENSITIVE_KEYS and value not in (None, "") else sanitize_params(value)
            for key, value in params.items()
        }
    if isinstance(params, list):
        return [sanitize_params(item) for item in params]
    return params


def _relative_path(path: str) -> str:
    path = path.split("?", 1)[0]
    if path.startswith(API_PREFIX):
        path = path[len(API_PREFIX):]
    return path.rstrip("/") or "/"


def resolve_module(path: str) -> str:
    relative = _relative_path(path)
    for prefix, module in MODULE_MAP.items():
        if relative == prefix or relative.startswith(prefix + "/"):
            return module
    return "other"


def resolve_action(method: str, path: str) -> Tuple[str, str]:
    """
    解析动作和描述 (Resolve action and human-readable description)

    Returns:
        (action, detail)，如 ("login", "用户登录")、("update", "更新 task")
    """
    method = method.upper()
    relative = _relative_path(path)
    special = SPECIAL_ROUTES.get((method, relative))
    if special:
        return special
    action = ACTION_MAP.get(method, method.lower())
    return action, f"{ACTION_LABELS.get(action, action)} {resolve_module(path)}"


async def record_operation(db: AsyncSession, **fields: Any) -> OperationLog:
    """写入一条日志并提交，只追加 (Append one entry and commit)"""
    entry = OperationLog(**fields)
    db.add(entry)
    await db.commit()
    return entry


async def list_operation_logs(
    db: AsyncSession,
    username: Optional[str] = None,
    module: Optional[str] = None,
    action: Optional[str] = None,
    result: Optional[str] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[OperationLog], int]:
    filters = []
    if username:
        filters.append(OperationLog.username.like(f"%{username}%"))
    if module:
        filters.append(OperationLog.module == module)
    if action:
        filters.append(OperationLog.action == action)
    if result:
        filters.append(OperationLog.result == result)
    if start_time:
        filters.append(OperationLog.created_at >= start_time)
    if end_time:
        filters.append(OperationLog.created_at <= end_time)

    total = (await db.execute(select(func.count(OperationLog.id)).where(*filters))).scalar()
    stmt = (
        select(OperationLog).where(*filters)
        .order_by(OperationLog.created_at.desc(), OperationLog.id.desc())
        .offset((page - 1) * page_size).limit(page_size)
    )
    return list((await db.execute(stmt)).scalars().all()), total


async def purge_operation_logs(db: AsyncSession, before_days: Optional[int] = None) -> int:
    """
    清理操作日志 (Purge operation logs)

    Args:
        before_days: 只删除早于 N 天的日志；为 None 时清空全部
    Returns:
        删除条数
    """
    stmt = delete(OperationLog)
    if before_days is not None:
        cutoff = datetime.now(timezone.utc) - timedelta(days=before_days)
        stmt = stmt.where(OperationLog.created_at < cutoff)
    result = await db.execute(stmt)
    await db.commit()
    deleted = result.rowcount or 0
    logger.info("Purged %d operation logs (before_days=%s)", deleted, before_days)
    return deleted
