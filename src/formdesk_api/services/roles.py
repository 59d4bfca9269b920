"""工作空间角色层级与权限动作表。

角色全序：OWNER > ADMIN > EDITOR > VIEWER。
每个动作只声明所需的最低角色，`permits` 基于静态表做纯函数判断，
不依赖数据库，也不接受自由字符串角色。
"""

from enum import StrEnum

from formdesk_api.models.enums import WorkspaceRole


class PermissionAction(StrEnum):
    """工作空间内的鉴权动作定义。"""

    WORKSPACE_READ = "workspace.read"
    WORKSPACE_UPDATE = "workspace.update"
    WORKSPACE_DELETE = "workspace.delete"

    MEMBER_READ = "member.read"
    MEMBER_INVITE = "member.invite"
    MEMBER_REMOVE = "member.remove"

    FORM_READ = "form.read"
    FORM_CREATE = "form.create"
    FORM_UPDATE = "form.update"
    FORM_PUBLISH = "form.publish"
    FORM_DELETE = "form.delete"

    PAGE_CREATE = "page.create"
    PAGE_UPDATE = "page.update"

    SUBMISSION_READ = "submission.read"
    ANALYTICS_READ = "analytics.read"

    ASSET_READ = "asset.read"
    ASSET_CREATE = "asset.create"
    ASSET_DELETE = "asset.delete"


ROLE_RANK: dict[WorkspaceRole, int] = {
    WorkspaceRole.OWNER: 4,
    WorkspaceRole.ADMIN: 3,
    WorkspaceRole.EDITOR: 2,
    WorkspaceRole.VIEWER: 1,
}

MIN_ROLE_BY_ACTION: dict[PermissionAction, WorkspaceRole] = {
    PermissionAction.WORKSPACE_READ: WorkspaceRole.VIEWER,
    # 重命名工作空间仅限所有者。
    PermissionAction.WORKSPACE_UPDATE: WorkspaceRole.OWNER,
    PermissionAction.WORKSPACE_DELETE: WorkspaceRole.OWNER,
    PermissionAction.MEMBER_READ: WorkspaceRole.VIEWER,
    PermissionAction.MEMBER_INVITE: WorkspaceRole.ADMIN,
    PermissionAction.MEMBER_REMOVE: WorkspaceRole.ADMIN,
    PermissionAction.FORM_READ: WorkspaceRole.VIEWER,
    PermissionAction.FORM_CREATE: WorkspaceRole.EDITOR,
    PermissionAction.FORM_UPDATE: WorkspaceRole.EDITOR,
    PermissionAction.FORM_PUBLISH: WorkspaceRole.EDITOR,
    PermissionAction.FORM_DELETE: WorkspaceRole.ADMIN,
    PermissionAction.PAGE_CREATE: WorkspaceRole.EDITOR,
    PermissionAction.PAGE_UPDATE: WorkspaceRole.EDITOR,
    PermissionAction.SUBMISSION_READ: WorkspaceRole.VIEWER,
    PermissionAction.ANALYTICS_READ: WorkspaceRole.VIEWER,
    PermissionAction.ASSET_READ: WorkspaceRole.VIEWER,
    PermissionAction.ASSET_CREATE: WorkspaceRole.EDITOR,
    PermissionAction.ASSET_DELETE: WorkspaceRole.EDITOR,
}

# 只读动作集合，VIEWER 仅能执行这些动作。
READ_ACTIONS = frozenset(
    action for action, min_role in MIN_ROLE_BY_ACTION.items() if min_role == WorkspaceRole.VIEWER
)


def role_rank(role: WorkspaceRole | str) -> int:
    """返回角色等级，数值越大权限越高。"""
    return ROLE_RANK[WorkspaceRole(role)]


def permits(role: WorkspaceRole | str, action: PermissionAction) -> bool:
    """判断角色是否满足动作所需的最低角色。"""
    return role_rank(role) >= role_rank(MIN_ROLE_BY_ACTION[action])


def can_remove_member(actor_role: WorkspaceRole | str, target_role: WorkspaceRole | str) -> bool:
    """判断能否移除目标成员：需具备移除权限，且所有者永远不能被移除。"""
    if WorkspaceRole(target_role) == WorkspaceRole.OWNER:
        return False
    return permits(actor_role, PermissionAction.MEMBER_REMOVE)


def can_leave(role: WorkspaceRole | str) -> bool:
    """所有者不可主动退出工作空间（未提供所有权转移）。"""
    return WorkspaceRole(role) != WorkspaceRole.OWNER


def grantable_roles() -> list[WorkspaceRole]:
    """邀请时允许授予的角色（不含 OWNER）。"""
    return [role for role in WorkspaceRole if role != WorkspaceRole.OWNER]


def allowed_actions(role: WorkspaceRole | str) -> list[str]:
    """返回角色可执行的动作快照，供前端按钮级鉴权使用。"""
    return sorted(action.value for action in PermissionAction if permits(role, action))
