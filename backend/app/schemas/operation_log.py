"""
操作日志响应模型
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel


class OperationLogOut(BaseModel):
    """操作日志响应体。"""
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    module: str
    action: str
    method: str
    path: str
    ip: Optional[str] = None
    params: Optional[Any] = None
    result: str
    status_code: Optional[int] = None
    detail: Optional[str] = None
    duration_ms: int
    created_at: datetime

    model_config = {"from_attributes": True}


class OperationLogListResponse(BaseModel):
    """操作日志分页响应。"""
    items: List[OperationLogOut]
    total: int
    page: int
    page_size: int
