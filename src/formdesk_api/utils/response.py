"""统一响应结构工具。"""

from datetime import datetime, timezone
from typing import Any

from fastapi import Request

DEFAULT_ERROR_MESSAGE = "internal server error"

_SUCCESS_MESSAGE_BY_METHOD = {
    "GET": "查询成功。",
    "POST": "操作成功。",
    "PUT": "更新成功。",
    "PATCH": "更新成功。",
    "DELETE": "删除成功。",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def success(request: Request, data: Any = None, message: str | None = None) -> dict[str, Any]:
    """构造统一成功响应结构。"""
    return {
        "request_id": _request_id(request),
        "status": "success",
        "message": message or _SUCCESS_MESSAGE_BY_METHOD.get(request.method.upper(), "操作成功。"),
        "data": data,
    }


def error_payload(
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """构造统一错误响应结构。"""
    final_details: dict[str, Any] = {
        "method": request.method.upper(),
        "path": request.url.path,
        "timestamp": _utc_now_iso(),
    }
    if details:
        final_details.update(details)
    return {
        "request_id": _request_id(request),
        "status": "error",
        "message": message,
        "code": code,
        "details": final_details,
    }
