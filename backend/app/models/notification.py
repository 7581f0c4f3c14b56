"""
站内通知模型 (In-app Notification Model)

每条通知属于唯一的接收人，可选地关联回某个业务实体（如任务、文章）。

Each notification belongs to exactly one recipient and may link back to a
business entity such as a task or an article.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin

NOTIFICATION_TYPES = ("system", "task", "article", "other")


class Notification(TimestampMixin, SoftDeleteMixin, Base):
    """
    通知表 (Notification Table)

    仅接收人本人可以查看、标记已读和删除。
    """
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)  # 主键 ID (Primary Key ID)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # 接收人 (Recipient)
    title: Mapped[str] = mapped_column(String(200), nullable=False)  # 标题 (Title)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 内容 (Content)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="system")  # system/task/article/other
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)  # 是否已读 (Read Flag)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # 阅读时间 (Read Time)
    sender_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 发送人，系统通知为空 (Sender, empty for system)
    related_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 关联实体 ID (Related Entity ID)
    related_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # 关联实体类型 (Related Entity Type)
