"""
文章管理路由 (Article Management Router)

功能说明：文章的增删改查、批量删除、发布切换
权限控制：article:view / article:create / article:edit / article:delete / article:publish
数据权限：非管理员只能看到和操作自己的文章；管理员可按作者过滤
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, get_data_scope, require_permissions
from app.models.user import User
from app.schemas.article import ArticleCreate, ArticleListResponse, ArticleOut, ArticleUpdate, BatchDelete
from app.services.article_service import ArticleService
from app.services.data_scope import DataScope

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.get("/categories", response_model=List[str])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """已使用的文章分类 (Categories in use)"""
    return await ArticleService(db).categories()


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    keyword: Optional[str] = Query(None, description="按标题或摘要模糊搜索"),
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    author_id: Optional[int] = Query(None, description="按作者过滤，仅管理员生效"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:view")),
):
    articles, total = await ArticleService(db).list_articles(
        scope, keyword, status, category, author_id, page, page_size
    )
    return ArticleListResponse(items=[ArticleOut.model_validate(a) for a in articles], total=total, page=page, page_size=page_size)


@router.get("/{article_id}", response_model=ArticleOut)
async def get_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:view")),
):
    """查看文章，浏览次数加一 (Read an article and count the view)"""
    return await ArticleService(db).get_article(scope, article_id)


@router.post("", response_model=ArticleOut, status_code=201)
async def create_article(
    data: ArticleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("article:create")),
):
    return await ArticleService(db).create_article(user.id, data.model_dump())


@router.put("/{article_id}", response_model=ArticleOut)
async def update_article(
    article_id: int,
    data: ArticleUpdate,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:edit")),
):
    """
    更新文章 (Update an article)

    Raises:
        PermissionDeniedError 403: 非作者且非管理员
    """
    return await ArticleService(db).update_article(scope, article_id, data.model_dump(exclude_unset=True))


@router.delete("/{article_id}")
async def delete_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:delete")),
):
    await ArticleService(db).delete_article(scope, article_id)
    return {"message": "文章已删除 (Article deleted)"}


@router.post("/batch-delete")
async def batch_delete_articles(
    data: BatchDelete,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:delete")),
):
    """批量删除；非管理员只会删除自己的文章 (Non-admins only delete their own rows)"""
    deleted = await ArticleService(db).batch_delete(scope, data.ids)
    return {"deleted": deleted}


@router.put("/{article_id}/publish", response_model=ArticleOut)
async def toggle_publish(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    scope: DataScope = Depends(get_data_scope),
    _: User = Depends(require_permissions("article:publish")),
):
    """发布/撤回切换 (Toggle between published and draft)"""
    return await ArticleService(db).toggle_publish(scope, article_id)
