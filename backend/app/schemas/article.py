"""
文章相关请求/响应模型
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ArticleStatus = Literal["draft", "published", "archived"]


class ArticleCreate(BaseModel):
    """创建文章请求体，summary 为空时取正文前 200 字。"""
    title: str = Field(min_length=1, max_length=200)
    content: Optional[str] = None
    summary: Optional[str] = Field(default=None, max_length=500)
    cover: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[str] = None
    status: ArticleStatus = "draft"


class ArticleUpdate(BaseModel):
    """更新文章请求体，所有字段可选。"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    summary: Optional[str] = Field(default=None, max_length=500)
    cover: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[str] = None
    status: Optional[ArticleStatus] = None


class BatchDelete(BaseModel):
    """批量删除请求体。"""
    ids: List[int]


class ArticleOut(BaseModel):
    """文章响应体。"""
    id: int
    title: str
    content: Optional[str] = None
    summary: Optional[str] = None
    cover: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    status: str
    view_count: int
    author_id: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ArticleListResponse(BaseModel):
    """文章列表分页响应。"""
    items: List[ArticleOut]
    total: int
    page: int
    page_size: int
