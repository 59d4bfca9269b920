"""工作空间素材库。"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from formdesk_api.core.config import get_settings
from formdesk_api.exceptions import ConflictError, NotFoundError, ValidationError
from formdesk_api.models.enums import MediaContextType
from formdesk_api.models.user import User
from formdesk_api.models.workspace import Workspace, WorkspaceAsset
from formdesk_api.services.authorization import require
from formdesk_api.services.media import CloudinaryClient
from formdesk_api.services.roles import PermissionAction

logger = logging.getLogger(__name__)


def list_assets(db: Session, *, workspace_id: UUID, actor: User) -> list[WorkspaceAsset]:
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.ASSET_READ)
    return list(
        db.execute(
            select(WorkspaceAsset)
            .where(WorkspaceAsset.workspace_id == workspace_id)
            .order_by(WorkspaceAsset.created_at.desc())
        ).scalars()
    )


def add_asset(
    db: Session,
    *,
    workspace_id: UUID,
    actor: User,
    image_url: str,
    image_public_id: str,
) -> WorkspaceAsset:
    """登记已直传到远程存储的图片，超过数量上限时拒绝。"""
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.ASSET_CREATE)
    if not image_url.strip() or not image_public_id.strip():
        raise ValidationError("素材地址与 public_id 不能为空。", code="INVALID_ASSET")

    # 锁定工作空间行，串行化同一空间的并发登记，保证数量上限。
    db.execute(select(Workspace.id).where(Workspace.id == workspace_id).with_for_update())
    limit = get_settings().workspace_asset_limit
    count = db.execute(
        select(func.count()).select_from(WorkspaceAsset).where(WorkspaceAsset.workspace_id == workspace_id)
    ).scalar_one()
    if count >= limit:
        raise ConflictError(
            f"每个工作空间最多保存 {limit} 个素材。",
            code="ASSET_LIMIT_REACHED",
            details={"limit": limit},
        )

    asset = WorkspaceAsset(workspace_id=workspace_id, image_url=image_url.strip(), image_public_id=image_public_id.strip())
    db.add(asset)
    db.flush()
    logger.info("asset added asset_id=%s workspace_id=%s", asset.id, workspace_id)
    return asset


def delete_asset(
    db: Session,
    *,
    workspace_id: UUID,
    asset_id: UUID,
    actor: User,
    media_client: CloudinaryClient,
) -> WorkspaceAsset:
    """先删除远程资源，成功后再删除素材记录。"""
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.ASSET_DELETE)
    asset = db.get(WorkspaceAsset, asset_id)
    if asset is None or asset.workspace_id != workspace_id:
        raise NotFoundError("素材不存在。", code="ASSET_NOT_FOUND")

    media_client.delete_by_public_id(asset.image_public_id)
    db.delete(asset)
    db.flush()
    logger.info("asset deleted asset_id=%s workspace_id=%s", asset_id, workspace_id)
    return asset


def purge_workspace_media(
    db: Session,
    *,
    workspace_id: UUID,
    actor: User,
    media_client: CloudinaryClient,
) -> dict[str, Any]:
    """按 `WORKSPACE_<id>` 标签清空远程媒体，并同步删除本地素材记录。

    远程删除失败时异常直接上抛，本地记录保持不变。
    """
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.ASSET_DELETE)
    result = media_client.purge_context(MediaContextType.WORKSPACE, workspace_id)
    removed = db.execute(delete(WorkspaceAsset).where(WorkspaceAsset.workspace_id == workspace_id)).rowcount
    db.flush()
    logger.info("workspace media purged workspace_id=%s assets=%s actor=%s", workspace_id, removed, actor.id)
    return result
