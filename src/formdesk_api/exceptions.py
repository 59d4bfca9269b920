"""业务异常定义与应用异常处理注册。

业务规则违反统一抛出 `AppError` 子类（携带状态码与错误码），
由本模块注册的处理器在请求边界一次性转换为统一错误结构。
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from formdesk_api.utils.response import DEFAULT_ERROR_MESSAGE, error_payload

logger = logging.getLogger(__name__)


class AppError(Exception):
    """携带 HTTP 状态码与机器可读错误码的业务异常基类。"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "请求处理失败。"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """请求字段缺失或格式错误。"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    message = "请求参数不合法。"


class UnauthenticatedError(AppError):
    """未携带或携带了无效/过期的访问令牌。"""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "未登录或登录状态已失效。"


class ForbiddenError(AppError):
    """已认证但缺少成员关系或角色权限。"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "无权限访问该资源。"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "请求资源不存在。"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "请求与当前数据状态冲突。"


class GoneError(AppError):
    status_code = status.HTTP_410_GONE
    code = "GONE"
    message = "资源已失效。"


class InternalError(AppError):
    """基础设施故障或缺失配置。"""


class InvitationInvalidError(NotFoundError):
    """邀请不存在、已处理或已过期（接受邀请时不区分具体原因）。"""

    code = "INVITATION_INVALID"
    message = "邀请无效或已过期。"


class MediaStorageError(InternalError):
    """远程媒体存储调用失败。"""

    code = "MEDIA_STORAGE_ERROR"
    message = "远程媒体存储请求失败。"


def _default_http_error_code(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "BAD_REQUEST"
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "UNAUTHORIZED"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "FORBIDDEN"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "NOT_FOUND"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "METHOD_NOT_ALLOWED"
    if status_code == status.HTTP_409_CONFLICT:
        return "CONFLICT"
    return "HTTP_ERROR"


def _default_http_message(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "请求参数不合法。"
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "未登录或登录状态已失效。"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "无权限访问该资源。"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请求资源不存在。"
    if status_code == status.HTTP_409_CONFLICT:
        return "请求与当前数据状态冲突。"
    return "请求处理失败。"


async def app_error_handler(request: Request, exc: AppError):
    """将业务异常包装为标准错误结构。"""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "request failed request_id=%s code=%s message=%s",
            getattr(request.state, "request_id", None),
            exc.code,
            exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(request, code=exc.code, message=exc.message, details=exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """将框架层协议异常（如 404 路由、405 方法）统一包装。"""
    details: dict[str, Any] = {}
    message = _default_http_message(exc.status_code)
    if isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    elif exc.detail is not None:
        details["detail"] = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(
            request,
            code=_default_http_error_code(exc.status_code),
            message=message,
            details=details,
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """统一处理请求参数校验错误（映射为 400）。"""
    normalized_errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload(
            request,
            code="VALIDATION_ERROR",
            message="请求参数校验失败。",
            details={"errors": normalized_errors},
        ),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    """处理未捕获异常，避免内部细节泄露。"""
    logger.exception("unexpected error request_id=%s", getattr(request.state, "request_id", None))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(request, code="INTERNAL_ERROR", message=DEFAULT_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """集中注册异常处理器。"""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
