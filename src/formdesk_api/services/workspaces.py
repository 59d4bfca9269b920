"""工作空间生命周期服务。"""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from formdesk_api.exceptions import ForbiddenError, NotFoundError, ValidationError
from formdesk_api.models.enums import MediaContextType, WorkspaceRole
from formdesk_api.models.form import Form
from formdesk_api.models.user import User
from formdesk_api.models.workspace import Invitation, Workspace, WorkspaceAsset, WorkspaceMember
from formdesk_api.services.authorization import require
from formdesk_api.services.forms import purge_forms
from formdesk_api.services.media import CloudinaryClient
from formdesk_api.services.membership import add_member, get_role, list_members, remove_member
from formdesk_api.services.roles import PermissionAction, can_leave, can_remove_member

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "my workspace"


def _normalize_name(name: str) -> str:
    normalized = name.strip()
    if not normalized:
        raise ValidationError("工作空间名称不能为空。", code="INVALID_WORKSPACE_NAME")
    return normalized


def get_workspace_or_404(db: Session, *, workspace_id: UUID) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("工作空间不存在。", code="WORKSPACE_NOT_FOUND")
    return workspace


def create_workspace_with_owner(db: Session, *, owner: User, name: str = DEFAULT_WORKSPACE_NAME) -> Workspace:
    """创建工作空间并把创建者写为 OWNER 成员。"""
    workspace = Workspace(name=_normalize_name(name), owner_user_id=owner.id)
    db.add(workspace)
    db.flush()
    add_member(db, workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER)
    logger.info("workspace created workspace_id=%s owner=%s", workspace.id, owner.id)
    return workspace


def rename_workspace(db: Session, *, workspace_id: UUID, actor: User, name: str) -> Workspace:
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.WORKSPACE_UPDATE)
    workspace = get_workspace_or_404(db, workspace_id=workspace_id)
    workspace.name = _normalize_name(name)
    db.flush()
    return workspace


def delete_workspace(
    db: Session,
    *,
    workspace_id: UUID,
    actor: User,
    media_client: CloudinaryClient | None = None,
) -> Workspace:
    """删除工作空间及其全部下属数据。

    表间没有数据库外键，级联删除在本事务内按依赖顺序执行；
    存在素材时同时清理远程存储中带 `WORKSPACE_<id>` 标签的资源。
    """
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.WORKSPACE_DELETE)
    workspace = get_workspace_or_404(db, workspace_id=workspace_id)

    has_assets = (
        db.execute(select(WorkspaceAsset.id).where(WorkspaceAsset.workspace_id == workspace_id).limit(1)).first()
        is not None
    )
    if has_assets:
        if media_client is not None and media_client.configured:
            media_client.purge_context(MediaContextType.WORKSPACE, workspace_id)
        else:
            logger.warning("remote media not purged, media storage not configured workspace_id=%s", workspace_id)

    form_ids = list(db.execute(select(Form.id).where(Form.workspace_id == workspace_id)).scalars())
    purge_forms(db, form_ids=form_ids)
    db.execute(delete(WorkspaceAsset).where(WorkspaceAsset.workspace_id == workspace_id))
    db.execute(delete(Invitation).where(Invitation.workspace_id == workspace_id))
    db.execute(delete(WorkspaceMember).where(WorkspaceMember.workspace_id == workspace_id))
    db.delete(workspace)
    db.flush()
    logger.info("workspace deleted workspace_id=%s forms=%s actor=%s", workspace_id, len(form_ids), actor.id)
    return workspace


def leave_workspace(db: Session, *, workspace_id: UUID, user: User) -> None:
    """成员主动退出；所有者不可退出。"""
    role = get_role(db, workspace_id=workspace_id, user_id=user.id)
    if role is None:
        raise ForbiddenError("你不是该工作空间的成员。", code="NOT_A_MEMBER")
    if not can_leave(role):
        raise ForbiddenError("所有者不能退出工作空间。", code="OWNER_CANNOT_LEAVE")
    remove_member(db, workspace_id=workspace_id, user_id=user.id)


def remove_workspace_member(db: Session, *, workspace_id: UUID, actor: User, target_user_id: UUID) -> None:
    """移除他人成员关系；所有者永远不能被移除。"""
    decision = require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.MEMBER_REMOVE)
    target_role = get_role(db, workspace_id=workspace_id, user_id=target_user_id)
    if target_role is None:
        raise NotFoundError("成员关系不存在。", code="MEMBER_NOT_FOUND")
    if not can_remove_member(decision.role, target_role):
        raise ForbiddenError("不能移除工作空间所有者。", code="CANNOT_REMOVE_OWNER")
    remove_member(db, workspace_id=workspace_id, user_id=target_user_id)


def list_user_workspaces(db: Session, *, user: User) -> dict[str, list[dict]]:
    """按“自己拥有 / 作为成员加入”分组返回工作空间。"""
    rows = db.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user.id)
        .order_by(Workspace.created_at)
    ).all()

    owned: list[dict] = []
    joined: list[dict] = []
    for workspace, role in rows:
        item = {
            "id": workspace.id,
            "name": workspace.name,
            "owner_user_id": workspace.owner_user_id,
            "role": role,
            "created_at": workspace.created_at,
        }
        if role == WorkspaceRole.OWNER:
            owned.append(item)
        else:
            joined.append(item)
    return {"owned_workspaces": owned, "joined_workspaces": joined}


def get_workspace_detail(db: Session, *, workspace_id: UUID, actor: User) -> dict:
    """返回工作空间及其表单、成员列表。"""
    decision = require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.WORKSPACE_READ)
    workspace = get_workspace_or_404(db, workspace_id=workspace_id)
    forms = db.execute(
        select(Form).where(Form.workspace_id == workspace_id).order_by(Form.created_at.desc())
    ).scalars()
    return {
        "id": workspace.id,
        "name": workspace.name,
        "owner_user_id": workspace.owner_user_id,
        "role": decision.role,
        "created_at": workspace.created_at,
        "forms": [
            {
                "id": form.id,
                "title": form.title,
                "description": form.description,
                "theme": form.theme,
                "status": form.status,
                "created_at": form.created_at,
            }
            for form in forms
        ],
        "members": list_members(db, workspace_id=workspace_id),
    }
