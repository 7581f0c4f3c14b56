"""
操作日志清理任务模块。

定期删除超过保留期限的操作日志，防止日志表无限增长。
默认保留 90 天，可通过环境变量 OPERATION_LOG_RETENTION_DAYS 配置，0 表示不清理。
"""
import asyncio
import logging
from typing import Optional

from app.core import database
from app.core.config import settings
from app.services.operation_log import purge_operation_logs

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 3600


async def cleanup_once(retention_days: int) -> int:
    """执行一次清理，返回删除条数。"""
    async with database.async_session() as db:
        return await purge_operation_logs(db, before_days=retention_days)


async def operation_log_cleanup_loop(retention_days: Optional[int] = None):
    """
    操作日志清理后台循环，每小时执行一次。

    Args:
        retention_days: 保留天数，为 None 时使用配置值
    """
    if retention_days is None:
        retention_days = settings.operation_log_retention_days
    if retention_days <= 0:
        logger.info("Operation log cleanup disabled")
        return

    logger.info("Starting operation log cleanup loop with %d days retention", retention_days)
    while True:
        try:
            deleted = await cleanup_once(retention_days)
            if deleted:
                logger.info("Operation log cleanup: deleted %d entries older than %d days", deleted, retention_days)
        except Exception as e:
            logger.exception("Operation log cleanup error: %s", e)
        await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
