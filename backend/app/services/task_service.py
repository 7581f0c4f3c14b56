"""
任务服务 (Task Service)

三级授权：管理员可操作所有任务；创建人可修改、删除、指派自己创建的任务；
负责人只能修改状态和备注。指派任务时给负责人发送站内通知。
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.models.mixins import utcnow
from app.models.task import TASK_COMPLETED, TASK_PRIORITIES, TASK_STATUSES, Task
from app.repositories.identity_repository import IdentityRepository
from app.services.data_scope import DataScope, TaskRelation, editable_task_fields
from app.services.notification_service import notify

logger = logging.getLogger(__name__)

TASK_FIELDS = ("title", "description", "priority", "status", "assignee_id", "due_date", "remark")
# status 为 null 时视为未修改 (A null status means unchanged)
TASK_NOT_NULL_FIELDS = ("title", "priority")

# 优先级排序权重，数值越大越靠前 (Sort weight, higher first)
PRIORITY_RANK = {priority: rank for rank, priority in enumerate(TASK_PRIORITIES, start=1)}


class TaskService:
    """任务服务 (Task service)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tasks(
        self,
        scope: DataScope,
        list_scope: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        keyword: Optional[str] = None,
        creator_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Task], int]:
        filters = [Task.live(), *scope.task_filters(Task.creator_id, Task.assignee_id, list_scope, creator_id, assignee_id)]
        if status:
            filters.append(Task.status == status)
        if priority:
            filters.append(Task.priority == priority)
        if keyword:
            filters.append(Task.title.like(f"%{keyword}%"))

        total = (await self.session.execute(select(func.count(Task.id)).where(*filters))).scalar()
        rank = case(PRIORITY_RANK, value=Task.priority, else_=0)
        stmt = (
            select(Task).where(*filters)
            .order_by(rank.desc(), Task.created_at.desc(), Task.id.desc())
            .offset((page - 1) * page_size).limit(page_size)
        )
        return list((await self.session.execute(stmt)).scalars().all()), total

    async def stats(self, scope: DataScope) -> Dict[str, Any]:
        """按状态和优先级统计可见任务 (Counts of visible tasks by status and priority)"""
        filters = [Task.live(), *scope.task_filters(Task.creator_id, Task.assignee_id)]
        by_status = dict.fromkeys(TASK_STATUSES, 0)
        by_priority = dict.fromkeys(TASK_PRIORITIES, 0)

        stmt = select(Task.status, func.count(Task.id)).where(*filters).group_by(Task.status)
        for status, count in (await self.session.execute(stmt)).all():
            by_status[status] = count
        stmt = select(Task.priority, func.count(Task.id)).where(*filters).group_by(Task.priority)
        for priority, count in (await self.session.execute(stmt)).all():
            by_priority[priority] = count

        return {"total": sum(by_status.values()), "by_status": by_status, "by_priority": by_priority}

    async def _get(self, task_id: int) -> Task:
        stmt = select(Task).where(Task.id == task_id, Task.live())
        task = (await self.session.execute(stmt)).scalar_one_or_none()
        if task is None:
            raise NotFoundError("任务不存在 (Task not found)")
        return task

    async def get_task(self, scope: DataScope, task_id: int) -> Task:
        task = await self._get(task_id)
        if scope.task_relation(task.creator_id, task.assignee_id) == TaskRelation.NONE:
            raise PermissionDeniedError("无权查看此任务 (You may not view this task)")
        return task

    async def _ensure_assignee(self, assignee_id: int) -> None:
        if await IdentityRepository(self.session).get_user(assignee_id) is None:
            raise ValidationError("负责人不存在 (assignee must be a live user)", detail="invalid_assignee")

    async def _notify_assignee(self, task: Task, sender_id: int) -> None:
        if task.assignee_id is None or task.assignee_id == sender_id:
            return
        await notify(
            self.session,
            task.assignee_id,
            title=f"新任务：{task.title}",
            content=task.description,
            type="task",
            related_id=task.id,
            related_type="task",
            sender_id=sender_id,
        )

    @staticmethod
    def _apply_status(task: Task, status: str) -> None:
        if status not in TASK_STATUSES:
            raise ValidationError(
                f"任务状态不合法 (status must be one of {', '.join(TASK_STATUSES)})", detail="invalid_status"
            )
        if status == TASK_COMPLETED and task.status != TASK_COMPLETED:
            task.completed_at = utcnow()
        elif status != TASK_COMPLETED:
            task.completed_at = None
        task.status = status

    async def create_task(self, creator_id: int, data: Mapping[str, Any]) -> Task:
        values = {key: value for key, value in data.items() if key in TASK_FIELDS and value is not None}
        status = values.pop("status", None)
        if values.get("assignee_id") is not None:
            await self._ensure_assignee(values["assignee_id"])

        task = Task(creator_id=creator_id, **values)
        if status is not None:
            self._apply_status(task, status)
        self.session.add(task)
        await self.session.flush()
        await self._notify_assignee(task, creator_id)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def update_task(self, scope: DataScope, task_id: int, data: Mapping[str, Any]) -> Task:
        """
        更新任务，可修改的字段由调用者与任务的关系决定 (Fields allowed depend on the caller's relation)

        Raises:
            PermissionDeniedError: 调用者与任务无关
        """
        task = await self._get(task_id)
        relation = scope.task_relation(task.creator_id, task.assignee_id)
        allowed = editable_task_fields(relation, {k: v for k, v in data.items() if k in TASK_FIELDS})
        if len(allowed) < len(data):
            logger.debug("Task %s: ignored fields %s for %s", task_id, set(data) - set(allowed), relation.value)

        for field in TASK_NOT_NULL_FIELDS:
            if field in allowed and allowed[field] is None:
                raise ValidationError(f"{field} 不能为空 ({field} cannot be null)", detail=f"{field}_required")

        status = allowed.pop("status", None)
        new_assignee = allowed.get("assignee_id")
        reassigned = "assignee_id" in allowed and new_assignee != task.assignee_id
        if reassigned and new_assignee is not None:
            await self._ensure_assignee(new_assignee)

        for field, value in allowed.items():
            setattr(task, field, value)
        if status is not None:
            self._apply_status(task, status)
        if reassigned:
            await self._notify_assignee(task, scope.user_id)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def update_status(self, scope: DataScope, task_id: int, status: str) -> Task:
        task = await self._get(task_id)
        if scope.task_relation(task.creator_id, task.assignee_id) == TaskRelation.NONE:
            raise PermissionDeniedError("无权修改此任务 (You may not modify this task)")
        self._apply_status(task, status)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def _ensure_owner(self, scope: DataScope, task: Task, message: str) -> None:
        if scope.task_relation(task.creator_id, task.assignee_id) not in (TaskRelation.ADMIN, TaskRelation.CREATOR):
            raise PermissionDeniedError(message)

    async def delete_task(self, scope: DataScope, task_id: int) -> None:
        task = await self._get(task_id)
        await self._ensure_owner(scope, task, "无权删除此任务 (You may not delete this task)")
        task.soft_delete()
        await self.session.commit()

    async def assign_task(self, scope: DataScope, task_id: int, assignee_id: int) -> Task:
        task = await self._get(task_id)
        await self._ensure_owner(scope, task, "无权指派此任务 (You may not assign this task)")
        await self._ensure_assignee(assignee_id)

        task.assignee_id = assignee_id
        await self._notify_assignee(task, scope.user_id)
        await self.session.commit()
        await self.session.refresh(task)
        logger.info("Task %s assigned to user %s by %s", task_id, assignee_id, scope.user_id)
        return task
