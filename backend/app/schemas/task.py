"""
任务相关请求/响应模型
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

TaskStatus = Literal["pending", "in_progress", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high", "urgent"]


class TaskCreate(BaseModel):
    """创建任务请求体。"""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    priority: TaskPriority = "medium"
    assignee_id: Optional[int] = None
    due_date: Optional[datetime] = None
    remark: Optional[str] = None


class TaskUpdate(BaseModel):
    """更新任务请求体；负责人只有 status 和 remark 会生效。"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[int] = None
    due_date: Optional[datetime] = None
    remark: Optional[str] = None


class TaskStatusUpdate(BaseModel):
    """更新任务状态请求体。"""
    status: TaskStatus


class TaskAssign(BaseModel):
    """指派任务请求体。"""
    assignee_id: int


class TaskOut(BaseModel):
    """任务响应体。"""
    id: int
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    creator_id: int
    assignee_id: Optional[int] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    remark: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    """任务列表分页响应。"""
    items: List[TaskOut]
    total: int
    page: int
    page_size: int


class TaskStats(BaseModel):
    """任务统计。"""
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
