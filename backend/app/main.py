"""
RBAC 管理后台入口模块 (RBAC Admin Backend Application Entry Module)

管理后台的主应用入口，负责 FastAPI 应用的完整生命周期管理。
包含数据库初始化、内置数据写入、中间件配置、路由注册、后台任务启动等核心功能。

Main application entry point for the RBAC admin console, responsible for complete
FastAPI application lifecycle management. Includes database initialization, built-in
data seeding, middleware configuration, route registration, and background task startup.

主要功能 (Main Features):
- 数据库表自动创建 (Automatic database table creation)
- 内置角色、菜单、账号种子数据 (Built-in roles, menus and accounts)
- 操作日志记录和定期清理 (Operation logging and periodic cleanup)
- 健康检查 (Health checks)
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.core import database
from app.core.config import settings
from app.core.database import Base, engine
from app.core.exceptions import register_exception_handlers
from app.core.operation_log_middleware import OperationLogMiddleware
from app.core.rate_limiting import RateLimitMiddleware
from app.core.redis import close_redis, ping_redis
from app.core.security_middleware import RequestSizeMiddleware, SecurityMiddleware
# 导入所有模型以确保 SQLAlchemy 表注册 (Import all models to ensure SQLAlchemy table registration)
from app import models  # noqa: F401
from app.routers import articles, auth, menus, notifications, operation_logs, roles, tasks, users
from app.services.seed import seed_builtin_data
from app.tasks.operation_log_cleanup import operation_log_cleanup_loop

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理器 (Application Lifecycle Manager)

    启动时建表、写入内置数据并启动操作日志清理任务；关闭时取消任务并释放连接池。

    Creates tables, seeds built-in data and starts the operation log cleanup task at
    startup; cancels the task and releases connection pools at shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_on_startup:
        async with database.async_session() as session:
            await seed_builtin_data(session)

    cleanup_task = asyncio.create_task(operation_log_cleanup_loop())
    logger.info("RBAC admin backend started (environment=%s)", settings.environment)

    yield

    cleanup_task.cancel()
    await close_redis()
    await engine.dispose()


# 创建 FastAPI 应用实例 (Create FastAPI application instance)
app = FastAPI(
    title="RBAC Admin",
    description="Role-based access control admin console | 基于角色的权限管理后台",
    version="0.1.0",
    lifespan=lifespan,
)

# 注册全局异常处理器 (Register global exception handlers)
register_exception_handlers(app)

# 中间件按注册顺序的逆序执行，最后注册的最先处理请求
# Middleware runs in reverse registration order; the last one added sees the request first

# 1. 请求大小限制中间件 (Request size limiting middleware)
app.add_middleware(RequestSizeMiddleware, max_size=settings.max_request_size)

# 2. 安全头中间件 (Security headers middleware)
app.add_middleware(SecurityMiddleware, enable_security_headers=settings.enable_security_headers)

# 3. API 限流中间件 (API rate limiting middleware)
app.add_middleware(RateLimitMiddleware, enable_rate_limiting=settings.enable_rate_limiting)

# 4. 操作日志中间件 (Operation log middleware)
app.add_middleware(OperationLogMiddleware)

# 5. CORS，生产环境只允许前端域名 (Only the frontend origin in production)
allowed_origins = [settings.frontend_url] if settings.is_production else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)

# 注册所有 API 路由模块 (Register all API router modules)
app.include_router(auth.router)  # 用户认证 (Authentication)
app.include_router(users.router)  # 用户管理 (User management)
app.include_router(roles.router)  # 角色管理 (Role management)
app.include_router(menus.router)  # 菜单管理 (Menu management)
app.include_router(articles.router)  # 文章管理 (Articles)
app.include_router(tasks.router)  # 任务管理 (Tasks)
app.include_router(notifications.router)  # 站内通知 (Notifications)
app.include_router(operation_logs.router)  # 操作日志 (Operation logs)


@app.get("/health")
@app.get("/api/v1/health")
async def health():
    """
    健康检查接口 (Health Check Endpoint)

    验证 API、数据库、Redis 的连通性，任一组件异常时返回 degraded。

    Returns:
        dict: 包含各组件状态和时间戳的健康检查结果 (Component status and timestamp)
    """
    checks = {"api": "ok"}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", e)
        checks["database"] = "error"

    checks["redis"] = "ok" if await ping_redis() else "error"

    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    return {
        "status": status,
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
