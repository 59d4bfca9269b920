"""工作空间邀请状态机。

状态流转：PENDING -> ACCEPTED | REJECTED，终态不可再变更。
过期不单独落库：PENDING 且 expires_at 已过即视为失效。

接受与拒绝都使用单条条件更新（status = PENDING 且未过期且归属当前用户），
并发的两次操作只有一次能命中，另一方按影响行数为 0 处理。
"""

from datetime import datetime, timedelta, timezone
import logging
import secrets
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from formdesk_api.core.config import get_settings
from formdesk_api.exceptions import (
    ConflictError,
    ForbiddenError,
    GoneError,
    InvitationInvalidError,
    NotFoundError,
    ValidationError,
)
from formdesk_api.models.enums import InvitationStatus, WorkspaceRole
from formdesk_api.models.user import User
from formdesk_api.models.workspace import Invitation, Workspace, WorkspaceMember
from formdesk_api.services.authorization import require
from formdesk_api.services.local_auth import normalize_email
from formdesk_api.services.membership import add_member, get_membership
from formdesk_api.services.roles import PermissionAction, grantable_roles

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """部分驱动（如 SQLite）读回的时间不带时区，统一按 UTC 解释。"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(invitation: Invitation, *, now: datetime | None = None) -> bool:
    """判断邀请是否已过期。"""
    return _as_utc(invitation.expires_at) <= (now or _utcnow())


def is_addressed_to(invitation: Invitation, user: User) -> bool:
    """判断邀请是否属于该用户：有 user_id 时以 user_id 为准，否则比对邮箱。"""
    if invitation.user_id is not None:
        return invitation.user_id == user.id
    return invitation.email == normalize_email(user.email)


def _addressed_to_clause(user: User):
    """`is_addressed_to` 的 SQL 版本，用于条件更新。"""
    return or_(
        and_(Invitation.user_id.is_not(None), Invitation.user_id == user.id),
        and_(Invitation.user_id.is_(None), Invitation.email == normalize_email(user.email)),
    )


def get_invitation_by_token(db: Session, *, token: str) -> Invitation | None:
    return db.execute(select(Invitation).where(Invitation.token == token)).scalar_one_or_none()


def create_invitation(
    db: Session,
    *,
    email: str,
    workspace_id: UUID,
    role: WorkspaceRole,
    inviter: User,
) -> Invitation:
    """创建待处理邀请。

    校验顺序：邀请人角色（403）-> 授予角色（400）-> 被邀请人已注册（400）
    -> 不能邀请自己（400）-> 被邀请人尚非成员（409）-> 无未过期的待处理邀请（409）。
    """
    require(db, user_id=inviter.id, workspace_id=workspace_id, action=PermissionAction.MEMBER_INVITE)

    role = WorkspaceRole(role)
    if role not in grantable_roles():
        raise ValidationError("不能通过邀请授予所有者角色。", code="INVALID_INVITATION_ROLE")

    normalized_email = normalize_email(email)
    invitee = db.execute(select(User).where(User.email == normalized_email)).scalar_one_or_none()
    if invitee is None:
        raise ValidationError("被邀请用户尚未注册。", code="INVITEE_NOT_REGISTERED")
    if invitee.id == inviter.id:
        raise ValidationError("不能邀请自己加入工作空间。", code="CANNOT_INVITE_SELF")

    if get_membership(db, workspace_id=workspace_id, user_id=invitee.id) is not None:
        raise ConflictError("该用户已是工作空间成员。", code="MEMBER_ALREADY_EXISTS")

    now = _utcnow()
    pending = db.execute(
        select(Invitation.id)
        .where(Invitation.workspace_id == workspace_id)
        .where(Invitation.email == normalized_email)
        .where(Invitation.status == InvitationStatus.PENDING)
        .where(Invitation.expires_at > now)
        .limit(1)
    ).scalar_one_or_none()
    if pending is not None:
        raise ConflictError("该用户已有待处理的邀请。", code="INVITATION_ALREADY_PENDING")

    invitation = Invitation(
        email=normalized_email,
        user_id=invitee.id,
        workspace_id=workspace_id,
        inviter_user_id=inviter.id,
        role=role,
        token=secrets.token_urlsafe(32),
        status=InvitationStatus.PENDING,
        expires_at=now + timedelta(days=get_settings().invitation_ttl_days),
    )
    db.add(invitation)
    db.flush()
    logger.info(
        "invitation created invitation_id=%s workspace_id=%s inviter=%s role=%s",
        invitation.id,
        workspace_id,
        inviter.id,
        role,
    )
    return invitation


def accept_invitation(db: Session, *, token: str, user: User) -> tuple[Invitation, WorkspaceMember]:
    """接受邀请并在同一事务内写入成员关系。

    不存在、已处理、已过期统一返回 INVITATION_INVALID，避免暴露邀请状态。
    """
    invitation = get_invitation_by_token(db, token=token)
    now = _utcnow()
    if invitation is None or invitation.status != InvitationStatus.PENDING or is_expired(invitation, now=now):
        raise InvitationInvalidError()
    if not is_addressed_to(invitation, user):
        raise ForbiddenError("该邀请不属于当前用户。", code="INVITATION_NOT_OWNED")
    if get_membership(db, workspace_id=invitation.workspace_id, user_id=user.id) is not None:
        raise ConflictError("你已是该工作空间成员。", code="MEMBER_ALREADY_EXISTS")

    result = db.execute(
        update(Invitation)
        .where(Invitation.id == invitation.id)
        .where(Invitation.status == InvitationStatus.PENDING)
        .where(Invitation.expires_at > now)
        .where(_addressed_to_clause(user))
        .values(status=InvitationStatus.ACCEPTED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # 并发请求已先一步处理了该邀请。
        raise InvitationInvalidError()

    membership = add_member(
        db,
        workspace_id=invitation.workspace_id,
        user_id=user.id,
        role=WorkspaceRole(invitation.role),
    )
    db.refresh(invitation)
    logger.info(
        "invitation accepted invitation_id=%s workspace_id=%s user_id=%s",
        invitation.id,
        invitation.workspace_id,
        user.id,
    )
    return invitation, membership


def reject_invitation(db: Session, *, token: str, user: User) -> Invitation:
    """拒绝邀请。

    条件更新未命中时重新读取并按 404 -> 409 -> 410 -> 403 的优先级给出原因。
    """
    now = _utcnow()
    result = db.execute(
        update(Invitation)
        .where(Invitation.token == token)
        .where(Invitation.status == InvitationStatus.PENDING)
        .where(Invitation.expires_at > now)
        .where(_addressed_to_clause(user))
        .values(status=InvitationStatus.REJECTED, expires_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )

    invitation = get_invitation_by_token(db, token=token)
    if result.rowcount == 0:
        if invitation is None:
            raise NotFoundError("邀请不存在。", code="INVITATION_NOT_FOUND")
        if invitation.status != InvitationStatus.PENDING:
            raise ConflictError("邀请已被处理。", code="INVITATION_ALREADY_PROCESSED")
        if is_expired(invitation, now=now):
            raise GoneError("邀请已过期。", code="INVITATION_EXPIRED")
        raise ForbiddenError("该邀请不属于当前用户。", code="INVITATION_NOT_OWNED")

    db.refresh(invitation)
    logger.info(
        "invitation rejected invitation_id=%s workspace_id=%s user_id=%s",
        invitation.id,
        invitation.workspace_id,
        user.id,
    )
    return invitation


def list_pending_invitations(db: Session, *, user: User) -> list[dict]:
    """返回发给当前用户、仍待处理且未过期的邀请。"""
    rows = db.execute(
        select(Invitation, Workspace.name, User.name)
        .join(Workspace, Workspace.id == Invitation.workspace_id)
        .outerjoin(User, User.id == Invitation.inviter_user_id)
        .where(_addressed_to_clause(user))
        .where(Invitation.status == InvitationStatus.PENDING)
        .where(Invitation.expires_at > _utcnow())
        .order_by(Invitation.created_at.desc())
    ).all()
    return [
        {
            "id": invitation.id,
            "token": invitation.token,
            "workspace_id": invitation.workspace_id,
            "workspace_name": workspace_name,
            "inviter_name": inviter_name,
            "role": invitation.role,
            "expires_at": invitation.expires_at,
        }
        for invitation, workspace_name, inviter_name in rows
    ]
