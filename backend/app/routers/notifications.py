"""
站内通知路由 (In-app Notification Router)

功能说明：当前用户的通知列表、未读数、标记已读、删除；管理员群发通知
数据权限：所有查询和修改都限定在接收人本人范围内
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_admin_user, get_current_user
from app.models.user import User
from app.schemas.notification import (
    NotificationBatchDelete,
    NotificationListResponse,
    NotificationOut,
    NotificationSend,
)
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    type: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await NotificationService(db).list_notifications(user.id, type, is_read, page, page_size)
    return NotificationListResponse(
        items=[NotificationOut.model_validate(n) for n in items], total=total, page=page, page_size=page_size
    )


@router.get("/unread-count")
async def unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"count": await NotificationService(db).unread_count(user.id)}


@router.put("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = await NotificationService(db).mark_all_read(user.id)
    return {"updated": updated}


@router.post("/batch-delete")
async def batch_delete(
    data: NotificationBatchDelete,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    deleted = await NotificationService(db).batch_delete(user.id, data.ids)
    return {"deleted": deleted}


@router.post("/send")
async def send_notification(
    data: NotificationSend,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    """
    管理员向多个用户发送通知 (Admin sends a notification to several users)

    Raises:
        ValidationError 422: 标题为空、接收人为空或不存在、类型非法
    """
    sent = await NotificationService(db).send(
        admin.id, data.user_ids, data.title, data.content, data.type, data.related_id, data.related_type
    )
    return {"sent": sent}


@router.put("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """标记单条已读；他人的通知视为不存在 (Other users' notifications are reported as missing)"""
    return await NotificationService(db).mark_read(user.id, notification_id)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await NotificationService(db).delete(user.id, notification_id)
    return {"message": "通知已删除 (Notification deleted)"}
