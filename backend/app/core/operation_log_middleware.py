"""
操作日志中间件 (Operation Log Middleware)

自动记录所有写操作（POST/PUT/PATCH/DELETE）：操作人、模块、动作、脱敏后的参数、结果和耗时。
跳过操作日志接口本身和健康检查。日志在响应发送后作为后台任务写入，使用独立会话，
写入失败只记录错误，不影响业务响应。

Records every write request in its own session, as a background task that runs once
the response has been sent. A failed write is logged and never surfaces to the client.
"""
import json
import logging
import time
from typing import Any, Optional, Tuple

from fastapi import Request
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core import database
from app.core.security import ACCESS_TOKEN_TYPE, decode_token
from app.models.operation_log import RESULT_FAIL, RESULT_SUCCESS
from app.services.operation_log import record_operation, resolve_action, resolve_module, sanitize_params

logger = logging.getLogger(__name__)

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
SKIP_PREFIXES = ("/api/v1/operation-logs", "/health", "/api/v1/health")


class OperationLogMiddleware(BaseHTTPMiddleware):
    """操作日志中间件 (Operation log middleware)"""

    def __init__(self, app, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self._should_record(request):
            return await call_next(request)

        body = await self._read_body(request)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            await self._write(request, body, self._elapsed_ms(started), status_code=500, error=str(exc))
            raise

        # 响应发送完毕后再写日志 (Written once the response body has been sent)
        response.background = BackgroundTask(
            self._write, request, body, self._elapsed_ms(started), status_code=response.status_code
        )
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)

    def _should_record(self, request: Request) -> bool:
        if not self.enabled or request.method.upper() not in WRITE_METHODS:
            return False
        return not request.url.path.startswith(SKIP_PREFIXES)

    @staticmethod
    async def _read_body(request: Request) -> Any:
        if "application/json" not in request.headers.get("content-type", ""):
            return None
        raw = await request.body()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @staticmethod
    def _actor(request: Request, body: Any) -> Tuple[Optional[int], Optional[str]]:
        """令牌中的操作人；登录、注册请求回退到请求体里的用户名 (Actor from token, else from body)"""
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_token(auth_header[len("Bearer "):])
            if payload and payload.get("type") == ACCESS_TOKEN_TYPE and str(payload.get("sub", "")).isdigit():
                return int(payload["sub"]), payload.get("username")
        if isinstance(body, dict) and isinstance(body.get("username"), str):
            return None, body["username"][:50]
        return None, None

    @staticmethod
    def _params(request: Request, body: Any) -> Any:
        query = dict(request.query_params)
        if isinstance(body, dict):
            params = {**query, **body}
        else:
            params = body if body is not None else query
        return sanitize_params(params) if params else None

    @staticmethod
    def _client_ip(request: Request) -> Optional[str]:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else None

    async def _write(
        self,
        request: Request,
        body: Any,
        duration_ms: int,
        status_code: int,
        error: Optional[str] = None,
    ) -> None:
        path = request.url.path
        method = request.method.upper()
        action, detail = resolve_action(method, path)
        if error:
            detail = f"{detail} - 异常: {error}"
        user_id, username = self._actor(request, body)

        try:
            async with database.async_session() as db:
                await record_operation(
                    db,
                    user_id=user_id,
                    username=username,
                    module=resolve_module(path),
                    action=action,
                    method=method,
                    path=path[:500],
                    ip=self._client_ip(request),
                    params=self._params(request, body),
                    result=RESULT_SUCCESS if status_code < 400 else RESULT_FAIL,
                    status_code=status_code,
                    detail=detail,
                    duration_ms=duration_ms,
                )
        except Exception:
            logger.exception("Failed to write operation log for %s %s", method, path)
