"""
站内通知相关请求/响应模型
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class NotificationSend(BaseModel):
    """发送通知请求体（管理员）。"""
    user_ids: List[int]
    title: str
    content: Optional[str] = None
    type: str = "system"
    related_id: Optional[int] = None
    related_type: Optional[str] = None


class NotificationBatchDelete(BaseModel):
    """批量删除通知请求体。"""
    ids: List[int]


class NotificationOut(BaseModel):
    """通知响应体。"""
    id: int
    user_id: int
    title: str
    content: Optional[str] = None
    type: str
    is_read: bool
    read_at: Optional[datetime] = None
    sender_id: Optional[int] = None
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """通知列表分页响应。"""
    items: List[NotificationOut]
    total: int
    page: int
    page_size: int
