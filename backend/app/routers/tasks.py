"""
任务管理路由 (Task Management Router)

功能说明：任务统计、增删改查、状态更新和指派
权限控制：task:view / task:create / task:edit / task:delete / task:assign
数据权限：管理员 > 创建人 > 负责人；负责人只能修改状态和备注
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_data_scope, require_permissions
from app.models.user import User
from app.schemas.task import TaskAssign, TaskCreate, TaskListResponse, TaskOut, TaskStats, TaskStatusUpdate, TaskUpdate
from app.services.data_scope import DataScope
from app.services.task_service import TaskService

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.get("/stats", response_model=TaskStats)
async def task_stats(
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:view")),
):
    """可见任务按状态、优先级统计 (Visible task counts by status and priority)"""
    return await TaskService(db).stats(scope)


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    scope_filter: Optional[str] = Query(None, alias="scope", description="created 我创建的 / assigned 指派给我的"),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    creator_id: Optional[int] = Query(None, description="仅管理员生效"),
    assignee_id: Optional[int] = Query(None, description="仅管理员生效"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:view")),
):
    """
    任务列表，按优先级降序、创建时间降序 (Ordered by priority then newest first)
    """
    tasks, total = await TaskService(db).list_tasks(
        scope, scope_filter, status, priority, keyword, creator_id, assignee_id, page, page_size
    )
    return TaskListResponse(items=[TaskOut.model_validate(t) for t in tasks], total=total, page=page, page_size=page_size)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:view")),
):
    return await TaskService(db).get_task(scope, task_id)


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("task:create")),
):
    """创建任务，创建人为当前用户；指定负责人时发送通知 (Caller becomes the creator)"""
    return await TaskService(db).create_task(user.id, data.model_dump())


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:edit")),
):
    """
    更新任务 (Update a task)

    负责人提交的其他字段会被忽略，只有 status 和 remark 生效。

    Raises:
        PermissionDeniedError 403: 与任务无关的用户
    """
    return await TaskService(db).update_task(scope, task_id, data.model_dump(exclude_unset=True))


@router.put("/{task_id}/status", response_model=TaskOut)
async def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:edit")),
):
    return await TaskService(db).update_status(scope, task_id, data.status)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:delete")),
):
    await TaskService(db).delete_task(scope, task_id)
    return {"message": "任务已删除 (Task deleted)"}


@router.put("/{task_id}/assign", response_model=TaskOut)
async def assign_task(
    task_id: int,
    data: TaskAssign,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("task:assign")),
):
    """
    指派任务并通知负责人 (Assign a task and notify the assignee)

    Raises:
        PermissionDeniedError 403: 非创建人且非管理员
        ValidationError 422: 负责人不存在
    """
    return await TaskService(db).assign_task(scope, task_id, data.assignee_id)
