"""
文章模型 (Article Model)

演示行级数据权限的业务实体：非管理员只能看到和修改自己写的文章。
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin

ARTICLE_DRAFT = "draft"
ARTICLE_PUBLISHED = "published"
ARTICLE_ARCHIVED = "archived"
ARTICLE_STATUSES = (ARTICLE_DRAFT, ARTICLE_PUBLISHED, ARTICLE_ARCHIVED)


class Article(TimestampMixin, SoftDeleteMixin, Base):
    """文章表 (Article Table)"""
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)  # 标题 (Title)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 正文 (Body)
    summary: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # 摘要，默认取正文前 200 字 (Summary)
    cover: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # 封面图 (Cover Image)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)  # 分类 (Category)
    tags: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # 逗号分隔标签 (Comma-separated Tags)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ARTICLE_DRAFT, index=True)  # draft/published/archived
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 浏览次数 (View Count)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # 作者 (Author)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # 首次发布时间 (First Publish Time)
