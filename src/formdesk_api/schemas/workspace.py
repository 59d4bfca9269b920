"""工作空间、邀请与素材相关请求结构。"""

from pydantic import BaseModel, Field

from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.schemas.auth import EMAIL_PATTERN


class WorkspaceCreateRequest(BaseModel):
    """创建工作空间请求体。"""

    name: str = Field(min_length=1, max_length=128, description="工作空间名称。", examples=["市场部问卷"])


class WorkspaceUpdateRequest(BaseModel):
    """重命名工作空间请求体。"""

    name: str = Field(min_length=1, max_length=128, description="新的工作空间名称。")


class WorkspaceInviteRequest(BaseModel):
    """邀请成员请求体。"""

    email: str = Field(
        min_length=5,
        max_length=256,
        pattern=EMAIL_PATTERN,
        description="被邀请人邮箱（须已注册）。",
        examples=["bob@example.com"],
    )
    role: WorkspaceRole = Field(
        default=WorkspaceRole.VIEWER,
        description="接受邀请后授予的角色，不可为 OWNER。",
        examples=["EDITOR"],
    )


class InvitationTokenRequest(BaseModel):
    """接受/拒绝邀请请求体。"""

    token: str = Field(min_length=1, max_length=128, description="邀请令牌。")


class WorkspaceAssetCreateRequest(BaseModel):
    """登记工作空间素材请求体。"""

    image_url: str = Field(min_length=1, description="已上传图片的访问地址。")
    image_public_id: str = Field(min_length=1, max_length=256, description="远程存储中的 public_id。")
