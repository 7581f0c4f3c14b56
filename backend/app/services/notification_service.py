"""
站内通知服务 (In-app Notification Service)

通知只对接收人本人可见；查询他人通知一律视为不存在。
任务指派等业务事件通过 notify() 写入通知，与业务修改在同一事务内提交。
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.mixins import utcnow
from app.models.notification import NOTIFICATION_TYPES, Notification
from app.repositories.identity_repository import IdentityRepository
from app.services.role_service import normalize_ids

logger = logging.getLogger(__name__)


async def notify(
    db: AsyncSession,
    user_id: int,
    title: str,
    content: Optional[str] = None,
    type: str = "system",
    related_id: Optional[int] = None,
    related_type: Optional[str] = None,
    sender_id: Optional[int] = None,
) -> Notification:
    """
    写入一条通知，只 flush 不提交 (Add one notification; flush only, caller commits)
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        content=content,
        type=type,
        related_id=related_id,
        related_type=related_type,
        sender_id=sender_id,
    )
    db.add(notification)
    await db.flush()
    return notification


class NotificationService:
    """通知服务，所有方法都限定在接收人本人范围内 (Recipient-scoped notification service)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _own(self, user_id: int):
        return (Notification.user_id == user_id, Notification.live())

    async def list_notifications(
        self,
        user_id: int,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Notification], int]:
        filters = list(self._own(user_id))
        if type:
            filters.append(Notification.type == type)
        if is_read is not None:
            filters.append(Notification.is_read.is_(is_read))

        total = (await self.session.execute(select(func.count(Notification.id)).where(*filters))).scalar()
        stmt = (
            select(Notification).where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size).limit(page_size)
        )
        return list((await self.session.execute(stmt)).scalars().all()), total

    async def unread_count(self, user_id: int) -> int:
        stmt = select(func.count(Notification.id)).where(*self._own(user_id), Notification.is_read.is_(False))
        return (await self.session.execute(stmt)).scalar()

    async def _get_own(self, user_id: int, notification_id: int) -> Notification:
        stmt = select(Notification).where(Notification.id == notification_id, *self._own(user_id))
        notification = (await self.session.execute(stmt)).scalar_one_or_none()
        if notification is None:
            raise NotFoundError("通知不存在 (Notification not found)")
        return notification

    async def mark_read(self, user_id: int, notification_id: int) -> Notification:
        notification = await self._get_own(user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.session.commit()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(*self._own(user_id), Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        await self.session.commit()
        return result.rowcount or 0

    async def delete(self, user_id: int, notification_id: int) -> None:
        notification = await self._get_own(user_id, notification_id)
        notification.soft_delete()
        await self.session.commit()

    async def batch_delete(self, user_id: int, raw_ids: Iterable) -> int:
        ids = normalize_ids(raw_ids)
        if not ids:
            raise ValidationError("请选择要删除的通知 (ids must not be empty)", detail="ids_required")
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id.in_(ids), *self._own(user_id))
            .values(deleted_at=utcnow())
        )
        await self.session.commit()
        return result.rowcount or 0

    async def send(
        self,
        sender_id: int,
        raw_user_ids: Iterable,
        title: str,
        content: Optional[str] = None,
        type: str = "system",
        related_id: Optional[int] = None,
        related_type: Optional[str] = None,
    ) -> int:
        """
        向多个用户发送通知 (Send a notification to several users)

        Raises:
            ValidationError: 标题为空、接收人为空、类型非法或接收人不存在
        """
        if not (title or "").strip():
            raise ValidationError("通知标题不能为空 (title is required)", detail="title_required")
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(
                f"通知类型不合法 (type must be one of {', '.join(NOTIFICATION_TYPES)})", detail="invalid_type"
            )
        user_ids = normalize_ids(raw_user_ids)
        if not user_ids:
            raise ValidationError("请选择接收人 (user_ids must not be empty)", detail="user_ids_required")
        if await IdentityRepository(self.session).count_live_users(user_ids) != len(user_ids):
            raise ValidationError("部分接收人不存在 (every user id must reference a live user)", detail="invalid_user_ids")

        for user_id in user_ids:
            await notify(self.session, user_id, title, content, type, related_id, related_type, sender_id)
        await self.session.commit()
        logger.info("User %s sent notification '%s' to %d users", sender_id, title, len(user_ids))
        return len(user_ids)
