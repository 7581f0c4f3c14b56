"""
文章服务 (Article Service)

非管理员只能看到、修改、删除自己的文章；管理员可查看全部并按作者过滤。
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.article import ARTICLE_DRAFT, ARTICLE_PUBLISHED, Article
from app.models.mixins import utcnow
from app.services.data_scope import DataScope
from app.services.role_service import normalize_ids

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 200
ARTICLE_FIELDS = ("title", "content", "summary", "cover", "category", "tags", "status")


class ArticleService:
    """文章服务 (Article service)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_articles(
        self,
        scope: DataScope,
        keyword: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        author_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Article], int]:
        filters = [Article.live(), scope.ownership_filter(Article.author_id, author_id)]
        if keyword:
            like = f"%{keyword}%"
            filters.append(or_(Article.title.like(like), Article.summary.like(like)))
        if status:
            filters.append(Article.status == status)
        if category:
            filters.append(Article.category == category)

        total = (await self.session.execute(select(func.count(Article.id)).where(*filters))).scalar()
        stmt = (
            select(Article).where(*filters)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset((page - 1) * page_size).limit(page_size)
        )
        return list((await self.session.execute(stmt)).scalars().all()), total

    async def categories(self) -> List[str]:
        stmt = (
            select(Article.category)
            .where(Article.live(), Article.category.is_not(None), Article.category != "")
            .distinct()
            .order_by(Article.category)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def _get(self, article_id: int) -> Article:
        stmt = select(Article).where(Article.id == article_id, Article.live())
        article = (await self.session.execute(stmt)).scalar_one_or_none()
        if article is None:
            raise NotFoundError("文章不存在 (Article not found)")
        return article

    async def get_article(self, scope: DataScope, article_id: int) -> Article:
        """查看文章并累加浏览次数 (Read an article and bump its view count)"""
        article = await self._get(article_id)
        scope.ensure_can_modify(article.author_id, "无权查看此文章 (You may not view this article)")
        article.view_count = (article.view_count or 0) + 1
        await self.session.commit()
        await self.session.refresh(article)
        return article

    async def create_article(self, author_id: int, data: Mapping[str, Any]) -> Article:
        values = {key: value for key, value in data.items() if key in ARTICLE_FIELDS and value is not None}
        values.setdefault("status", ARTICLE_DRAFT)
        if not values.get("summary") and values.get("content"):
            values["summary"] = values["content"][:SUMMARY_LENGTH]

        article = Article(author_id=author_id, **values)
        if article.status == ARTICLE_PUBLISHED:
            article.published_at = utcnow()
        self.session.add(article)
        await self.session.commit()
        await self.session.refresh(article)
        return article

    async def update_article(self, scope: DataScope, article_id: int, data: Mapping[str, Any]) -> Article:
        article = await self._get(article_id)
        scope.ensure_can_modify(article.author_id, "无权修改此文章 (You may not modify this article)")

        for field, value in data.items():
            if field in ARTICLE_FIELDS:
                setattr(article, field, value)
        if article.status == ARTICLE_PUBLISHED and article.published_at is None:
            article.published_at = utcnow()
        await self.session.commit()
        await self.session.refresh(article)
        return article

    async def delete_article(self, scope: DataScope, article_id: int) -> None:
        article = await self._get(article_id)
        scope.ensure_can_modify(article.author_id, "无权删除此文章 (You may not delete this article)")
        article.soft_delete()
        await self.session.commit()

    async def batch_delete(self, scope: DataScope, raw_ids: Iterable[Any]) -> int:
        """批量删除；非管理员自动收窄为自己的文章 (Non-admins are narrowed to their own rows)"""
        ids = normalize_ids(raw_ids)
        if not ids:
            raise ValidationError("请选择要删除的文章 (ids must not be empty)", detail="ids_required")
        result = await self.session.execute(
            update(Article)
            .where(Article.id.in_(ids), Article.live(), scope.ownership_filter(Article.author_id))
            .values(deleted_at=utcnow())
        )
        await self.session.commit()
        return result.rowcount or 0

    async def toggle_publish(self, scope: DataScope, article_id: int) -> Article:
        article = await self._get(article_id)
        scope.ensure_can_modify(article.author_id, "无权发布此文章 (You may not publish this article)")
        if article.status == ARTICLE_PUBLISHED:
            article.status = ARTICLE_DRAFT
        else:
            article.status = ARTICLE_PUBLISHED
            if article.published_at is None:
                article.published_at = utcnow()
        await self.session.commit()
        await self.session.refresh(article)
        return article
