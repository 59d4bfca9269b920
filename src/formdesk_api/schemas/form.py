"""表单、页面、提交与媒体相关请求结构。"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from formdesk_api.models.enums import FormTheme, MediaContextType, MediaFileType


class FormCreateRequest(BaseModel):
    """创建表单请求体。"""

    title: str = Field(min_length=1, max_length=256, description="表单标题。", examples=["客户满意度调查"])
    description: str | None = Field(default=None, description="表单说明。")
    theme: FormTheme = Field(description="表单主题样式。", examples=["BOXY"])


class PageContentUpdateRequest(BaseModel):
    """更新页面内容请求体。"""

    content: Any = Field(default=None, description="页面内容（编辑器产出的 JSON）。")


class SubmissionCreateRequest(BaseModel):
    """公开提交请求体。"""

    content: Any = Field(default=None, description="提交内容（JSON）。")


class MediaSignedUrlRequest(BaseModel):
    """直传签名请求体。"""

    file_type: MediaFileType = Field(description="文件类型（IMAGE 或 PDF）。", examples=["IMAGE"])
    type: MediaContextType = Field(description="媒体归属的业务对象类型。", examples=["WORKSPACE"])
    id: UUID = Field(description="媒体归属的业务对象 ID。")
