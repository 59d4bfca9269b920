"""领域枚举定义。"""

from enum import StrEnum


class WorkspaceRole(StrEnum):
    """工作空间角色，按权限从高到低排列。"""

    OWNER = "OWNER"  # 工作空间所有者，可删除工作空间、移除任意非所有者成员。
    ADMIN = "ADMIN"  # 管理员，可邀请/移除成员并管理表单。
    EDITOR = "EDITOR"  # 编辑者，可创建与编辑表单、页面、素材。
    VIEWER = "VIEWER"  # 只读成员。


class InvitationStatus(StrEnum):
    """邀请状态。过期不单独存储，由 expires_at 推导。"""

    PENDING = "PENDING"  # 待处理。
    ACCEPTED = "ACCEPTED"  # 已接受（终态）。
    REJECTED = "REJECTED"  # 已拒绝（终态）。


class FormTheme(StrEnum):
    """表单主题样式。"""

    BOXY = "BOXY"
    ROUNDED = "ROUNDED"


class DeviceType(StrEnum):
    """访问设备类型。"""

    MOBILE = "MOBILE"
    DESKTOP = "DESKTOP"


class MediaFileType(StrEnum):
    """允许上传的媒体文件类型。"""

    IMAGE = "IMAGE"
    PDF = "PDF"


class MediaContextType(StrEnum):
    """媒体归属的业务对象类型，用于生成远程存储标签。"""

    FORM = "FORM"
    WORKSPACE = "WORKSPACE"
