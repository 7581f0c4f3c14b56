"""
操作日志模型 (Operation Log Model)

记录所有写操作（POST/PUT/PATCH/DELETE）的操作人、模块、动作、请求参数（已脱敏）、
结果和耗时。只追加，不修改；仅支持按时间批量清理。

Records every write request: actor, module, action, sanitized parameters, result
and latency. Append-only; removed only by time-boxed bulk purges.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import utcnow

RESULT_SUCCESS = "success"
RESULT_FAIL = "fail"


class OperationLog(Base):
    """
    操作日志表 (Operation Log Table)

    user_id 不设外键：用户被删除后日志仍需保留原始操作人。
    """
    __tablename__ = "operation_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)  # 主键 ID (Primary Key ID)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)  # 操作用户 ID (Operating User ID)
    username: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)  # 操作用户名 (Operating Username)
    module: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # 模块，如 user/role/menu (Module)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # 动作，如 create/update/delete (Action)
    method: Mapped[str] = mapped_column(String(10), nullable=False)  # HTTP 方法 (HTTP Method)
    path: Mapped[str] = mapped_column(String(500), nullable=False)  # 请求路径 (Request Path)
    ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # 客户端 IP（支持 IPv6） (Client IP)
    params: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # 脱敏后的请求参数 (Sanitized Parameters)
    result: Mapped[str] = mapped_column(String(20), nullable=False, default=RESULT_SUCCESS, index=True)  # success/fail
    status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # HTTP 状态码 (HTTP Status Code)
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 补充说明 (Detail)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 耗时（毫秒） (Latency in ms)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )  # 操作时间 (Operation Time)
