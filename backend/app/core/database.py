"""
数据库连接模块 (Database Connection Module)

基于 SQLAlchemy 2.0 异步模式创建数据库引擎和会话工厂。
身份存储（用户、角色、菜单及其关联）和业务数据都通过这里的会话读写。

Creates the async SQLAlchemy engine and session factory. The identity store
(users, roles, menus and their bindings) and business data are read and written
through sessions created here.
"""
from typing import AsyncGenerator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

# 统一约束命名，唯一约束冲突时日志中能直接看出是哪一列
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# 创建异步数据库引擎 (Create Async Database Engine)
engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,  # 连接失效时自动重连 (Reconnect stale pooled connections)
)

# 创建异步会话工厂 (Create Async Session Factory)
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False  # 提交后不过期对象，便于返回已保存的数据 (Don't expire objects after commit)
)


class Base(DeclarativeBase):
    """ORM 模型基类 (ORM Model Base Class)"""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 依赖项：获取数据库会话 (FastAPI Dependency: Get Database Session)

    每个请求一个会话。处理函数抛出异常时回滚未提交的修改，
    保证角色菜单替换等多步写操作不会留下半成品。

    One session per request. Uncommitted changes are rolled back when the handler
    raises, so multi-step writes never leave a partial state behind.

    Yields:
        AsyncSession: 异步数据库会话实例 (Async database session instance)
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
