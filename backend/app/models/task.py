"""
任务模型 (Task Model)

演示三级授权的业务实体：管理员 > 创建人 > 负责人。
负责人只能修改状态和备注，其他字段由创建人或管理员维护。
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin

TASK_PENDING = "pending"
TASK_IN_PROGRESS = "in_progress"
TASK_COMPLETED = "completed"
TASK_CANCELLED = "cancelled"
TASK_STATUSES = (TASK_PENDING, TASK_IN_PROGRESS, TASK_COMPLETED, TASK_CANCELLED)

TASK_PRIORITIES = ("low", "medium", "high", "urgent")


class Task(TimestampMixin, SoftDeleteMixin, Base):
    """任务表 (Task Table)"""
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)  # 标题 (Title)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 描述 (Description)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")  # low/medium/high/urgent
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TASK_PENDING, index=True)  # pending/in_progress/completed/cancelled
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # 创建人 (Creator)
    assignee_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # 负责人 (Assignee)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # 截止时间 (Due Date)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # 完成时间 (Completion Time)
    remark: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 备注 (Remark)
