"""
全局异常处理模块 (Global Exception Handling Module)

业务异常统一渲染为 {error, message, detail, status_code}：
    - error   稳定的错误类别，前端据此分支（authentication_failed / permission_denied ...）
    - message 面向人的说明，指出违反了哪条规则
    - detail  稳定的规则键，如 button_requires_parent、duplicate_permission_code

认证失败（401）与授权拒绝（403）是两个独立的类型，前端据此区分"重新登录"和"无权访问"。
请求体结构校验仍走 FastAPI 默认的 422 响应。

Business errors render as one JSON shape. 401 and 403 stay distinct types.
Schema violations of request bodies keep FastAPI's default 422 body.
"""
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


# ============================================================
# 业务异常类 (Business Exception Classes)
# ============================================================

class BusinessError(Exception):
    """业务异常基类 (Base Business Exception)"""
    status_code: int = 400
    error: str = "business_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "detail": self.detail,
            "status_code": self.status_code,
        }


class AuthenticationError(BusinessError):
    """凭证缺失、无效、过期或已注销 (Missing, invalid, expired or revoked credential)"""
    status_code = 401
    error = "authentication_failed"


class PermissionDeniedError(BusinessError):
    """身份有效但权限不足 (Valid identity, insufficient permission)"""
    status_code = 403
    error = "permission_denied"


class NotFoundError(BusinessError):
    """引用的菜单/角色/用户等不存在 (Referenced entity is absent)"""
    status_code = 404
    error = "not_found"


class ConflictError(BusinessError):
    """存在子节点、系统保留角色或内置账号、用户名/邮箱重复 (Blocked by existing state)"""
    status_code = 409
    error = "conflict"


class ValidationError(BusinessError):
    """
    写入前的规则校验失败 (A mutation rule was violated before any write)

    detail 携带规则键，message 说明具体规则。
    """
    status_code = 422
    error = "validation_error"


# ============================================================
# 全局异常处理器注册 (Global Exception Handler Registration)
# ============================================================

def register_exception_handlers(app: FastAPI) -> None:
    """
    注册全局异常处理器 (Register global exception handlers)

    处理优先级：
    1. BusinessError 子类 → 对应状态码 + 结构化响应；401 附带 WWW-Authenticate
    2. IntegrityError → 409，并发写入撞上唯一约束时兜底
    3. HTTPException → 保持状态码，包装为统一格式
    4. Exception → 500 + 完整 traceback 日志
    """

    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
        if isinstance(exc, PermissionDeniedError):
            logger.info("Denied %s %s: %s", request.method, request.url.path, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        conflict = ConflictError("数据已被修改或存在重复记录 (Unique constraint violated)", detail="integrity_conflict")
        return JSONResponse(status_code=conflict.status_code, content=conflict.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": str(exc.detail),
                "detail": None,
                "status_code": exc.status_code,
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(exc),
            traceback.format_exc(),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "服务器内部错误，请稍后重试 (Internal server error, please try again later)",
                "detail": None,
                "status_code": 500,
            },
        )
