"""工作空间资源授权网关。

统一封装“成员关系 -> 跨租户校验 -> 角色权限”三步判定，
避免路由层重复拼装授权查询导致规则不一致。

判定顺序：
1. 调用者必须是工作空间成员，否则拒绝（NOT_A_MEMBER）。
2. 若指定表单，表单必须存在且属于该工作空间（FORM_NOT_FOUND / FORM_NOT_IN_WORKSPACE）。
3. 成员角色必须满足动作所需最低角色（INSUFFICIENT_ROLE）。
"""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from sqlalchemy.orm import Session

from formdesk_api.exceptions import ForbiddenError, NotFoundError
from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.models.form import Form
from formdesk_api.services.membership import get_role
from formdesk_api.services.roles import PermissionAction, permits


class DenyReason(StrEnum):
    """拒绝原因。"""

    NOT_A_MEMBER = "not_a_member"
    FORM_NOT_FOUND = "form_not_found"
    FORM_NOT_IN_WORKSPACE = "form_not_in_workspace"
    INSUFFICIENT_ROLE = "insufficient_role"


_DENY_MESSAGES = {
    DenyReason.NOT_A_MEMBER: "你不是该工作空间的成员。",
    DenyReason.FORM_NOT_FOUND: "表单不存在。",
    DenyReason.FORM_NOT_IN_WORKSPACE: "表单不属于该工作空间。",
    DenyReason.INSUFFICIENT_ROLE: "当前角色无权执行该操作。",
}


@dataclass(frozen=True)
class Decision:
    """授权判定结果。"""

    allowed: bool
    reason: DenyReason | None = None
    role: WorkspaceRole | None = None
    form: Form | None = None

    @classmethod
    def deny(cls, reason: DenyReason, *, role: WorkspaceRole | None = None) -> "Decision":
        return cls(allowed=False, reason=reason, role=role)


def authorize(
    db: Session,
    *,
    user_id: UUID,
    workspace_id: UUID,
    action: PermissionAction,
    form_id: UUID | None = None,
) -> Decision:
    """返回调用者对工作空间（及可选表单）执行动作的判定结果，无副作用。"""
    role = get_role(db, workspace_id=workspace_id, user_id=user_id)
    if role is None:
        return Decision.deny(DenyReason.NOT_A_MEMBER)

    form = None
    if form_id is not None:
        form = db.get(Form, form_id)
        if form is None:
            return Decision.deny(DenyReason.FORM_NOT_FOUND, role=role)
        # 跨工作空间访问防护：表单必须属于路径中声明的工作空间。
        if form.workspace_id != workspace_id:
            return Decision.deny(DenyReason.FORM_NOT_IN_WORKSPACE, role=role)

    if not permits(role, action):
        return Decision.deny(DenyReason.INSUFFICIENT_ROLE, role=role)

    return Decision(allowed=True, role=role, form=form)


def require(
    db: Session,
    *,
    user_id: UUID,
    workspace_id: UUID,
    action: PermissionAction,
    form_id: UUID | None = None,
) -> Decision:
    """执行授权判定，拒绝时抛出对应业务异常。"""
    decision = authorize(db, user_id=user_id, workspace_id=workspace_id, action=action, form_id=form_id)
    if decision.allowed:
        return decision

    details = {"reason": decision.reason.value, "action": action.value}
    if decision.reason == DenyReason.FORM_NOT_FOUND:
        raise NotFoundError(_DENY_MESSAGES[decision.reason], code="FORM_NOT_FOUND", details=details)
    raise ForbiddenError(_DENY_MESSAGES[decision.reason], code=decision.reason.value.upper(), details=details)


def require_form(
    db: Session,
    *,
    user_id: UUID,
    workspace_id: UUID,
    form_id: UUID,
    action: PermissionAction,
) -> tuple[Form, WorkspaceRole]:
    """校验表单级动作权限并返回表单与调用者角色。"""
    decision = require(db, user_id=user_id, workspace_id=workspace_id, action=action, form_id=form_id)
    return decision.form, decision.role


def require_form_by_id(
    db: Session,
    *,
    user_id: UUID,
    form_id: UUID,
    action: PermissionAction,
) -> tuple[Form, WorkspaceRole]:
    """仅凭表单 ID 鉴权，工作空间由表单反查。

    表单不存在与非成员返回同一个 403，调用方无法据此探测表单是否存在。
    """
    form = db.get(Form, form_id)
    role = get_role(db, workspace_id=form.workspace_id, user_id=user_id) if form is not None else None
    if form is None or role is None:
        details = {"reason": DenyReason.NOT_A_MEMBER.value, "action": action.value}
        raise ForbiddenError(_DENY_MESSAGES[DenyReason.NOT_A_MEMBER], code="NOT_A_MEMBER", details=details)
    return require_form(db, user_id=user_id, workspace_id=form.workspace_id, form_id=form.id, action=action)
