"""
安全增强中间件 (Security Enhancement Middleware)

为管理后台 API 响应添加安全响应头，拦截超长 URL 和超大请求体。
认证、用户、角色、菜单和操作日志相关路径禁止缓存。

Adds security response headers to admin API responses and rejects oversized
URLs and request bodies. Identity and audit paths are marked non-cacheable.
"""
import re
from typing import Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.config import settings

MAX_URL_LENGTH = 2048

# 敏感路径：响应中可能包含身份与权限数据 (Responses may carry identity or permission data)
SENSITIVE_PATTERNS = (
    r"/api/v1/auth/.*",
    r"/api/v1/users.*",
    r"/api/v1/roles.*",
    r"/api/v1/menus.*",
    r"/api/v1/operation-logs.*",
)


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    安全增强中间件 (Security Enhancement Middleware)

    生产环境额外下发 HSTS。
    """

    def __init__(self, app, enable_security_headers: bool = True, is_production: Optional[bool] = None):
        super().__init__(app)
        self.enable_security_headers = enable_security_headers
        self.is_production = settings.is_production if is_production is None else is_production

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self._is_request_safe(request):
            return Response(content="Bad Request", status_code=400, headers={"Content-Type": "text/plain"})

        response = await call_next(request)

        if self.enable_security_headers:
            for name, value in self._build_security_headers(request).items():
                response.headers[name] = value
        return response

    @staticmethod
    def _is_request_safe(request: Request) -> bool:
        return len(str(request.url)) <= MAX_URL_LENGTH

    def _build_security_headers(self, request: Request) -> Dict[str, str]:
        headers = {
            "X-Content-Type-Options": "nosniff",  # 防止 MIME 嗅探
            "X-Frame-Options": "DENY",  # 防止点击劫持
            "X-XSS-Protection": "1; mode=block",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "X-Permitted-Cross-Domain-Policies": "none",
            "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
        }
        if self.is_production:
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

        # 纯 JSON API，不需要加载任何资源 (JSON-only API loads no resources)
        if request.url.path.startswith("/api/"):
            headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        if self._is_sensitive_path(request.url.path):
            headers["Cache-Control"] = "no-cache, no-store, must-revalidate, private"
            headers["Pragma"] = "no-cache"
            headers["Expires"] = "0"
        return headers

    @staticmethod
    def _is_sensitive_path(path: str) -> bool:
        return any(re.match(pattern, path) for pattern in SENSITIVE_PATTERNS)


class RequestSizeMiddleware(BaseHTTPMiddleware):
    """
    请求大小限制中间件 (Request Size Limiting Middleware)

    Content-Length 超限返回 413，非法返回 400。
    """

    def __init__(self, app, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                return Response(
                    content="Invalid Content-Length header",
                    status_code=400,
                    headers={"Content-Type": "text/plain"},
                )
            if size > self.max_size:
                return Response(
                    content=f"Request entity too large. Max allowed: {self.max_size} bytes",
                    status_code=413,
                    headers={"Content-Type": "text/plain"},
                )
        return await call_next(request)
