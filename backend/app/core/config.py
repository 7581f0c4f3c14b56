"""
应用配置模块 (Application Configuration Module)

使用 Pydantic Settings 管理 RBAC 管理后台的所有配置项，支持从 .env 文件和环境变量读取。
提供数据库连接、Redis 缓存、JWT 认证、角色编码、初始化数据等各模块的配置管理。

Uses Pydantic Settings to manage all configuration items for the RBAC admin backend,
supporting reading from .env files and environment variables. Provides configuration
for database connections, Redis cache, JWT authentication, role codes and seed data.
"""
import logging
import secrets
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    应用全局配置类 (Application Global Configuration Class)

    使用 Pydantic BaseSettings 实现类型安全的配置管理。
    字段名自动映射同名环境变量（不区分大小写），支持 .env 文件加载。

    Implements type-safe configuration management using Pydantic BaseSettings.
    Field names automatically map to same-named environment variables (case insensitive),
    supporting .env file loading.
    """

    # 数据库配置 (Database Configuration)
    postgres_host: str = "localhost"  # PostgreSQL 主机地址 (PostgreSQL Host)
    postgres_port: int = 5432  # PostgreSQL 端口号 (PostgreSQL Port)
    postgres_db: str = "rbac_admin"  # 数据库名称 (Database Name)
    postgres_user: str = "rbac_admin"  # 数据库用户名 (Database Username)
    postgres_password: str = "rbac_admin_dev_password"  # 数据库密码 (Database Password)

    # Redis 配置 (Redis Configuration)
    redis_host: str = "localhost"  # Redis 主机地址 (Redis Host)
    redis_port: int = 6379  # Redis 端口号 (Redis Port)
    redis_db: int = 0  # Redis 库编号 (Redis Database Index)
    redis_password: str = ""  # Redis 密码，留空表示无密码 (Redis Password, empty for none)
    redis_socket_timeout: float = 2.0  # 连接与读写超时（秒） (Connect/IO Timeout in Seconds)

    # JWT 认证配置 (JWT Authentication Configuration)
    # ⚠️ 生产环境必须通过环境变量 JWT_SECRET_KEY 设置！未设置时自动生成随机密钥（每次重启会变化）
    # ⚠️ MUST set JWT_SECRET_KEY env var in production! Auto-generated random key changes on every restart.
    jwt_secret_key: str = ""  # JWT 签名密钥 (JWT Secret Key)
    jwt_algorithm: str = "HS256"  # JWT 算法 (JWT Algorithm)
    jwt_access_token_expire_minutes: int = 120  # 访问令牌过期时间（分钟） (Access Token Expiry Minutes)
    jwt_refresh_token_expire_days: int = 7  # 刷新令牌过期时间（天） (Refresh Token Expiry Days)

    # 角色编码配置 (Role Code Configuration)
    super_admin_role_code: str = "super_admin"  # 超级管理员角色编码 (Top Role Code)
    admin_role_codes: List[str] = ["super_admin", "admin"]  # 管理员角色编码 (Administrative Role Codes)
    default_role_code: str = "user"  # 注册/新建用户的默认角色 (Default Role for New Users)
    reserved_role_codes: List[str] = ["super_admin", "admin", "user"]  # 系统保留角色，不可删除 (Undeletable Roles)
    protected_usernames: List[str] = ["superadmin", "admin"]  # 系统内置账号，不可删除 (Undeletable Accounts)

    # 初始化数据配置 (Seed Data Configuration)
    seed_on_startup: bool = True  # 启动时写入内置角色/菜单/账号 (Seed Built-in Data on Startup)
    seed_default_password: str = "123456"  # 内置账号初始密码 (Initial Password for Built-in Accounts)

    # 操作日志配置 (Operation Log Configuration)
    operation_log_retention_days: int = 90  # 操作日志保留天数，0 表示不清理 (Retention Days, 0 Disables Purge)

    # 安全和限流配置 (Security and Rate Limiting Configuration)
    enable_rate_limiting: bool = True  # 是否启用 API 限流 (Enable API Rate Limiting)
    enable_security_headers: bool = True  # 是否启用安全响应头 (Enable Security Headers)
    max_request_size: int = 10 * 1024 * 1024  # 最大请求体大小（字节） (Max Request Body Size in Bytes)
    environment: str = "development"  # 运行环境：development/production (Runtime Environment)
    frontend_url: str = "http://localhost:3001"  # 前端 URL (Frontend URL)
    log_level: str = "INFO"  # 日志级别 (Log Level)

    @model_validator(mode="after")
    def _check_role_codes(self) -> "Settings":
        """超级管理员必须属于管理员角色，默认角色必须是保留角色 (Role codes must stay consistent)"""
        if self.super_admin_role_code not in self.admin_role_codes:
            self.admin_role_codes = [self.super_admin_role_code, *self.admin_role_codes]
        for code in (*self.admin_role_codes, self.default_role_code):
            if code not in self.reserved_role_codes:
                self.reserved_role_codes = [*self.reserved_role_codes, code]
        return self

    @property
    def database_url(self) -> str:
        """
        构造 PostgreSQL 异步连接 URL (Build PostgreSQL Async Connection URL)

        根据配置的数据库连接参数，生成适用于 asyncpg 驱动的连接字符串。
        """
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def redis_url(self) -> str:
        """构造 Redis 连接 URL (Build Redis Connection URL)"""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}  # Pydantic 配置：自动加载 .env 文件 (Pydantic Config: Auto-load .env file)


# 全局配置实例 (Global Configuration Instance)
settings = Settings()

# JWT 密钥安全检查：未设置时生成随机密钥并警告
if not settings.jwt_secret_key or settings.jwt_secret_key == "change-me-in-production":
    settings.jwt_secret_key = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY 未设置，已自动生成随机密钥。此密钥在每次重启后会变化，所有已签发的 token 将失效。"
        " | JWT_SECRET_KEY not set, using auto-generated random key. "
        "All issued tokens will be invalidated on restart."
    )
