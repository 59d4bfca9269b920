"""工作空间成员关系存取。

只负责 (workspace_id, user_id) -> role 的唯一性与增删，
所有者豁免等业务规则由授权层与工作空间服务在调用前校验。
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formdesk_api.exceptions import ConflictError, NotFoundError
from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.models.user import User
from formdesk_api.models.workspace import WorkspaceMember

logger = logging.getLogger(__name__)


def get_membership(db: Session, *, workspace_id: UUID, user_id: UUID) -> WorkspaceMember | None:
    """查询用户在工作空间中的成员关系。"""
    return (
        db.execute(
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .where(WorkspaceMember.user_id == user_id)
        )
        .scalar_one_or_none()
    )


def get_role(db: Session, *, workspace_id: UUID, user_id: UUID) -> WorkspaceRole | None:
    """返回用户在工作空间中的角色，非成员返回 None。"""
    membership = get_membership(db, workspace_id=workspace_id, user_id=user_id)
    if membership is None:
        return None
    return WorkspaceRole(membership.role)


def add_member(db: Session, *, workspace_id: UUID, user_id: UUID, role: WorkspaceRole) -> WorkspaceMember:
    """新增成员关系，已存在时抛出冲突。"""
    if get_membership(db, workspace_id=workspace_id, user_id=user_id) is not None:
        raise ConflictError("该用户已是工作空间成员。", code="MEMBER_ALREADY_EXISTS")

    membership = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=WorkspaceRole(role))
    db.add(membership)
    try:
        db.flush()
    except IntegrityError as exc:
        # 并发写入时由唯一约束兜底。
        raise ConflictError("该用户已是工作空间成员。", code="MEMBER_ALREADY_EXISTS") from exc

    logger.info("member added workspace_id=%s user_id=%s role=%s", workspace_id, user_id, membership.role)
    return membership


def remove_member(db: Session, *, workspace_id: UUID, user_id: UUID) -> WorkspaceMember:
    """删除成员关系，不存在时抛出 404。"""
    membership = get_membership(db, workspace_id=workspace_id, user_id=user_id)
    if membership is None:
        raise NotFoundError("成员关系不存在。", code="MEMBER_NOT_FOUND")

    db.delete(membership)
    db.flush()
    logger.info("member removed workspace_id=%s user_id=%s role=%s", workspace_id, user_id, membership.role)
    return membership


def list_members(db: Session, *, workspace_id: UUID) -> list[dict]:
    """返回工作空间成员及其用户资料。"""
    rows = db.execute(
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at)
    ).all()
    return [
        {
            "user_id": user.id,
            "name": user.name,
            "email": user.email,
            "role": membership.role,
        }
        for membership, user in rows
    ]
