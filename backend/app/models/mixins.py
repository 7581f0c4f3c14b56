"""
模型通用字段 (Shared Model Columns)

时间戳与软删除字段。软删除的行保留在表中，默认查询通过 ``live()`` 条件排除。
时间戳在 Python 侧赋值，异步会话提交后无需再次刷新即可读取。

Timestamp and soft-delete columns shared by the models. Tombstoned rows stay in
the table and are excluded from default queries through ``live()``.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """创建/更新时间 (Creation and update time)"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )  # 创建时间 (Creation Time)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )  # 更新时间 (Update Time)


class SoftDeleteMixin:
    """软删除标记，deleted_at 非空即视为已删除 (Soft delete tombstone)"""
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )  # 删除时间 (Deletion Time)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    @classmethod
    def live(cls):
        """未删除行的查询条件 (Filter clause for rows that are not tombstoned)"""
        return cls.deleted_at.is_(None)
