"""
Redis 连接模块 (Redis Connection)

令牌黑名单和限流中间件共用的全局客户端。两者在 Redis 故障时都放行请求，
所以连接和读写都设置较短的超时，避免请求卡在不可达的 Redis 上。
"""
import logging

import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)

# 全局 Redis 客户端实例 (Process-wide client, created on first use)
redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """获取 Redis 客户端实例，首次调用时创建 (Return the shared client, creating it lazily)"""
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_socket_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
    return redis_client


async def ping_redis() -> bool:
    """健康检查用，任何连接错误都视为不可用 (Health check; any error means unavailable)"""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    """关闭 Redis 连接，释放资源 (Close the shared client)"""
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
