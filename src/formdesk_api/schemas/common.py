"""全局通用结构。

用于定义统一响应包裹结构，便于在线接口文档展示与联调。
"""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """基础结构，开启对象映射能力。"""

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseSchema):
    """统一错误响应。"""

    request_id: str | None = Field(description="服务端生成的请求追踪 ID。")
    status: Literal["error"] = Field(default="error", description="响应状态。")
    message: str = Field(description="人类可读错误信息。")
    code: str = Field(description="机器可识别错误码。")
    details: dict[str, Any] = Field(default_factory=dict, description="请求方法、路径、时间戳与扩展错误细节。")


T = TypeVar("T")


class SuccessResponse(BaseSchema, Generic[T]):
    """统一成功响应。"""

    request_id: str | None = Field(description="服务端生成的请求追踪 ID。")
    status: Literal["success"] = Field(default="success", description="响应状态。")
    message: str = Field(description="人类可读结果说明。")
    data: T = Field(description="业务返回数据主体。")
