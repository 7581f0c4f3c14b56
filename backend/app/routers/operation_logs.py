"""
操作日志路由 (Operation Log Router)

功能说明：操作日志只读查询和按天数清理，日志本身由操作日志中间件写入
权限控制：查询仅管理员；清理仅超级管理员
API端点：GET /api/v1/operation-logs, DELETE /api/v1/operation-logs/clear
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_admin_user, get_super_admin_user
from app.models.user import User
from app.schemas.operation_log import OperationLogListResponse, OperationLogOut
from app.services.operation_log import list_operation_logs, purge_operation_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/operation-logs", tags=["operation-logs"])


@router.get("", response_model=OperationLogListResponse)
async def list_logs(
    username: Optional[str] = Query(None, description="按操作人模糊搜索"),
    module: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    result: Optional[str] = Query(None, description="success / fail"),
    start_time: Optional[datetime] = Query(None),
    end_time: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_admin_user),
):
    """
    分页查询操作日志，按时间倒序 (Paginated operation logs, newest first)
    """
    logs, total = await list_operation_logs(
        db, username, module, action, result, start_time, end_time, page, page_size
    )
    return OperationLogListResponse(
        items=[OperationLogOut.model_validate(log) for log in logs], total=total, page=page, page_size=page_size
    )


@router.delete("/clear")
async def clear_logs(
    before_days: Optional[int] = Query(None, ge=0, description="只清理早于 N 天的日志，不传则清空全部"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_super_admin_user),
):
    """清理操作日志，仅超级管理员 (Purge operation logs, super admin only)"""
    deleted = await purge_operation_logs(db, before_days)
    logger.warning("User %s cleared %d operation logs (before_days=%s)", admin.id, deleted, before_days)
    return {"deleted": deleted, "message": f"清除了 {deleted} 条日志"}
