"""工作空间、成员、邀请与素材模型。"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from formdesk_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from formdesk_api.models.enums import InvitationStatus, WorkspaceRole


class Workspace(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """工作空间实体，表单与成员的协作隔离边界。"""

    __tablename__ = "workspaces"

    # 工作空间名称，面向用户展示。
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 创建者（所有者）用户 ID。
    owner_user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)


class WorkspaceMember(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """工作空间成员关系，每个用户在每个工作空间仅持有一个角色。"""

    __tablename__ = "workspace_members"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uk_workspace_member"),)

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 工作空间角色（OWNER/ADMIN/EDITOR/VIEWER）。
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=WorkspaceRole.VIEWER)


class Invitation(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """工作空间邀请。

    状态机：PENDING -> ACCEPTED | REJECTED。
    过期不落库为独立状态：status 仍为 PENDING，但 expires_at 已过即视为失效。
    """

    __tablename__ = "invitations"

    # 被邀请人邮箱（小写）。
    email: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    # 被邀请人用户 ID，匹配到注册用户后写入。
    user_id: Mapped[UUID | None] = mapped_column(index=True)
    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 发起邀请的用户 ID。
    inviter_user_id: Mapped[UUID] = mapped_column(nullable=False)
    # 接受后授予的角色。
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    # 不透明邀请令牌，全局唯一。
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=InvitationStatus.PENDING)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class WorkspaceAsset(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """工作空间素材（远程媒体存储中的图片）。"""

    __tablename__ = "workspace_assets"

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 可公开访问的图片地址。
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    # 远程存储中的 public_id，删除远程资源时使用。
    image_public_id: Mapped[str] = mapped_column(String(256), nullable=False)
