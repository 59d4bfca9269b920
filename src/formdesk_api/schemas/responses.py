"""接口成功响应 `data` 字段结构定义。

说明：
1. 所有业务接口统一返回 `SuccessResponse[data=...]`。
2. 本文件专注于定义各接口在 `data` 中的业务字段。
3. 字段描述会直接用于 Swagger 展示，便于联调时理解含义。
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from formdesk_api.schemas.common import BaseSchema


class HealthStatusData(BaseSchema):
    """健康检查返回结构。"""

    status: str = Field(description="健康状态值，常见为 ok 或 ready。")


class AuthMeData(BaseSchema):
    """`/auth/me` 接口返回的数据结构。"""

    id: UUID = Field(description="用户 ID。")
    email: str = Field(description="用户邮箱。")
    name: str = Field(description="用户名称。")
    created_at: datetime | None = Field(default=None, description="注册时间。")


class WorkspaceData(BaseSchema):
    """工作空间基础信息。"""

    id: UUID = Field(description="工作空间 ID。")
    name: str = Field(description="工作空间名称。")
    owner_user_id: UUID = Field(description="所有者用户 ID。")
    role: str | None = Field(default=None, description="当前用户在该工作空间中的角色。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class WorkspaceListData(BaseSchema):
    """当前用户的工作空间分组。"""

    owned_workspaces: list[WorkspaceData] = Field(description="当前用户拥有的工作空间。")
    joined_workspaces: list[WorkspaceData] = Field(description="当前用户作为成员加入的工作空间。")


class WorkspaceMemberData(BaseSchema):
    """工作空间成员信息。"""

    user_id: UUID = Field(description="成员用户 ID。")
    name: str = Field(description="成员名称。")
    email: str = Field(description="成员邮箱。")
    role: str = Field(description="成员角色。")


class FormSummaryData(BaseSchema):
    """表单列表项。"""

    id: UUID = Field(description="表单 ID。")
    title: str = Field(description="表单标题。")
    description: str | None = Field(default=None, description="表单说明。")
    theme: str = Field(description="表单主题。")
    status: bool = Field(description="是否已发布。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class WorkspaceDetailData(WorkspaceData):
    """工作空间详情（含表单与成员）。"""

    forms: list[FormSummaryData] = Field(description="工作空间内的表单。")
    members: list[WorkspaceMemberData] = Field(description="工作空间成员。")


class MemberRoleData(BaseSchema):
    """当前用户在工作空间中的角色与可执行动作。"""

    workspace_id: UUID = Field(description="工作空间 ID。")
    role: str = Field(description="当前用户角色。")
    allowed_actions: list[str] = Field(description="当前角色允许的动作列表。")


class InvitationData(BaseSchema):
    """邀请信息。"""

    id: UUID = Field(description="邀请 ID。")
    workspace_id: UUID = Field(description="工作空间 ID。")
    email: str = Field(description="被邀请人邮箱。")
    role: str = Field(description="接受后授予的角色。")
    status: str = Field(description="邀请状态。")
    token: str = Field(description="邀请令牌。")
    expires_at: datetime = Field(description="过期时间。")


class PendingInvitationData(BaseSchema):
    """当前用户收到的待处理邀请。"""

    id: UUID = Field(description="邀请 ID。")
    token: str = Field(description="邀请令牌。")
    workspace_id: UUID = Field(description="工作空间 ID。")
    workspace_name: str = Field(description="工作空间名称。")
    inviter_name: str | None = Field(default=None, description="邀请人名称。")
    role: str = Field(description="接受后授予的角色。")
    expires_at: datetime = Field(description="过期时间。")


class InvitationAcceptData(BaseSchema):
    """接受邀请结果。"""

    invitation_id: UUID = Field(description="邀请 ID。")
    workspace_id: UUID = Field(description="加入的工作空间 ID。")
    role: str = Field(description="获得的角色。")
    status: str = Field(description="邀请最新状态。")


class InvitationRejectData(BaseSchema):
    """拒绝邀请结果。"""

    invitation_id: UUID = Field(description="邀请 ID。")
    status: str = Field(description="邀请最新状态。")


class DeletedData(BaseSchema):
    """删除类操作结果。"""

    id: UUID = Field(description="被删除或被移除对象的 ID。")
    deleted: bool = Field(default=True, description="是否已删除。")


class AssetData(BaseSchema):
    """工作空间素材。"""

    id: UUID = Field(description="素材 ID。")
    workspace_id: UUID = Field(description="工作空间 ID。")
    image_url: str = Field(description="图片访问地址。")
    image_public_id: str = Field(description="远程存储 public_id。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class FormData(FormSummaryData):
    """表单基础信息。"""

    workspace_id: UUID = Field(description="所属工作空间 ID。")


class FormStatusData(BaseSchema):
    """发布状态切换结果。"""

    id: UUID = Field(description="表单 ID。")
    title: str = Field(description="表单标题。")
    status: bool = Field(description="切换后的发布状态。")


class FormPageData(BaseSchema):
    """表单页面。"""

    id: UUID = Field(description="页面 ID。")
    page: int = Field(description="页码（从 1 开始）。")
    content: Any | None = Field(default=None, description="页面内容。")


class FormWithPageData(FormData):
    """表单与指定页面。"""

    pages: list[FormPageData] = Field(description="请求的页面（单元素列表）。")
    total_pages: int = Field(description="表单总页数。")


class PublicFormData(BaseSchema):
    """公开表单结构。"""

    id: UUID = Field(description="表单 ID。")
    title: str = Field(description="表单标题。")
    description: str | None = Field(default=None, description="表单说明。")
    theme: str = Field(description="表单主题。")
    status: bool = Field(description="是否已发布。")
    created_at: datetime | None = Field(default=None, description="创建时间。")
    pages: list[FormPageData] = Field(description="全部页面，按页码升序。")


class SubmissionData(BaseSchema):
    """表单提交记录。"""

    id: UUID = Field(description="提交 ID。")
    form_id: UUID = Field(description="表单 ID。")
    content: Any = Field(description="提交内容。")
    created_at: datetime | None = Field(default=None, description="提交时间。")


class VisitData(BaseSchema):
    """访问记录结果。"""

    form_id: UUID = Field(description="表单 ID。")
    device_type: str = Field(description="识别出的设备类型。")


class DeviceBreakdownData(BaseSchema):
    mobile: int = Field(description="移动端访问次数。")
    desktop: int = Field(description="桌面端访问次数。")


class FormAnalyticsData(BaseSchema):
    """表单访问统计。"""

    form_id: UUID = Field(description="表单 ID。")
    total_visits: int = Field(description="累计访问次数。")
    total_submissions: int = Field(description="累计提交次数。")
    conversion_rate: str = Field(description="转化率百分比（两位小数）。")
    device_breakdown: DeviceBreakdownData = Field(description="按设备类型拆分的访问次数。")


class SignedUploadData(BaseSchema):
    """直传签名结果。"""

    upload_url: str = Field(description="客户端直传地址。")
    form_data: dict[str, str] = Field(description="需随文件一并提交的表单字段。")
    file_id: str = Field(description="上传后资源的 public_id。")


class MediaDeleteData(BaseSchema):
    """按标签清理结果。"""

    tag: str = Field(description="被清理的资源标签。")
    result: dict[str, Any] = Field(default_factory=dict, description="远程存储返回的原始结果。")
