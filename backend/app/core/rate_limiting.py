"""
API 限流中间件 (API Rate Limiting Middleware)

基于 Redis 有序集合的滑动窗口限流，按 IP 或按用户计数。

Sliding-window rate limiting over Redis sorted sets, keyed by client IP or user.

限流规则分级 (Rate Limit Rules Tiers):
- 严格级别：登录、注册、刷新令牌 (Strict: login, register, refresh)
- 普通级别：用户、角色、菜单、文章、任务等管理接口 (Normal: admin resources)
- 默认级别：其他所有路径 (Default: everything else)
"""
import json
import logging
import secrets
import time
from typing import Dict, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.redis import get_redis
from app.core.security import ACCESS_TOKEN_TYPE, decode_token

logger = logging.getLogger(__name__)


class RateLimitRule:
    """
    限流规则定义 (Rate Limit Rule Definition)

    Args:
        max_requests: 时间窗口内最大请求数
        window_seconds: 时间窗口长度（秒）
        per_user: 是否按用户计数，未认证请求回退到 IP
    """

    def __init__(self, max_requests: int, window_seconds: int, per_user: bool = False, description: str = ""):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.per_user = per_user
        self.description = description


DEFAULT_RULES: Dict[str, RateLimitRule] = {
    # 严格限制：认证相关端点 (Strict: Authentication endpoints)
    "/api/v1/auth/login": RateLimitRule(5, 300, description="登录接口：5次/5分钟"),
    "/api/v1/auth/register": RateLimitRule(3, 600, description="注册接口：3次/10分钟"),
    "/api/v1/auth/refresh": RateLimitRule(10, 300, per_user=True, description="刷新Token：10次/5分钟/用户"),

    # 普通限制：管理接口 (Normal: admin resources)
    "/api/v1/users": RateLimitRule(50, 60, per_user=True, description="用户管理：50次/分钟/用户"),
    "/api/v1/roles": RateLimitRule(50, 60, per_user=True, description="角色管理：50次/分钟/用户"),
    "/api/v1/menus": RateLimitRule(100, 60, per_user=True, description="菜单管理：100次/分钟/用户"),
    "/api/v1/articles": RateLimitRule(100, 60, per_user=True, description="文章管理：100次/分钟/用户"),
    "/api/v1/tasks": RateLimitRule(100, 60, per_user=True, description="任务管理：100次/分钟/用户"),

    # 全局默认限制 (Global default limit)
    "*": RateLimitRule(500, 60, description="默认限制：500次/分钟"),
}

SKIP_PATHS = ("/health", "/api/v1/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    API 限流中间件 (API Rate Limiting Middleware)

    超限返回 429 和 Retry-After；Redis 故障时放行，可用性优先。
    """

    def __init__(self, app, enable_rate_limiting: bool = True, rules: Optional[Dict[str, RateLimitRule]] = None):
        super().__init__(app)
        self.enable_rate_limiting = enable_rate_limiting
        self.rules = rules if rules is not None else DEFAULT_RULES

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.enable_rate_limiting or request.url.path in SKIP_PATHS:
            return await call_next(request)

        rule = self._get_matching_rule(request.url.path)
        if rule is not None:
            key = self._build_rate_limit_key(request, rule)
            current_requests, retry_after = await self._check_rate_limit(key, rule)
            if current_requests > rule.max_requests:
                logger.warning("Rate limit exceeded: key=%s %d/%d", key, current_requests, rule.max_requests)
                return Response(
                    content=json.dumps({
                        "error": "rate_limit_exceeded",
                        "message": f"Rate limit exceeded: {rule.description}",
                        "retry_after": retry_after,
                    }, ensure_ascii=False),
                    status_code=429,
                    headers={"Retry-After": str(retry_after), "Cache-Control": "no-cache, no-store, must-revalidate"},
                    media_type="application/json",
                )
        return await call_next(request)

    def _get_matching_rule(self, path: str) -> Optional[RateLimitRule]:
        """精确匹配 > 前缀匹配 > 默认规则 (Exact, then prefix, then default)"""
        if path in self.rules:
            return self.rules[path]
        for rule_path, rule in self.rules.items():
            if rule_path != "*" and path.startswith(rule_path):
                return rule
        return self.rules.get("*")

    def _build_rate_limit_key(self, request: Request, rule: RateLimitRule) -> str:
        key_parts = ["rate_limit", request.url.path.replace("/", "_")]
        user_id = self._get_user_id_from_request(request) if rule.per_user else None
        key_parts.append(f"user_{user_id}" if user_id else f"ip_{self._get_client_ip(request)}")
        return ":".join(key_parts)

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _get_user_id_from_request(request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return None
        payload = decode_token(auth_header[len("Bearer "):])
        if payload and payload.get("type") == ACCESS_TOKEN_TYPE:
            return payload.get("sub")
        return None

    async def _check_rate_limit(self, key: str, rule: RateLimitRule) -> Tuple[int, int]:
        """
        滑动窗口计数 (Sliding window count)

        Returns:
            (窗口内请求数, 建议重试秒数)；Redis 故障时返回 (0, 0)
        """
        try:
            redis_client = await get_redis()
            now = time.time()
            pipe = redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, now - rule.window_seconds)
            pipe.zadd(key, {f"{now:.6f}-{secrets.token_hex(4)}": now})
            pipe.zcard(key)
            pipe.expire(key, rule.window_seconds + 60)
            results = await pipe.execute()
            return results[2], rule.window_seconds
        except Exception as e:
            logger.error("Redis rate limit check failed: %s", e)
            return 0, 0
