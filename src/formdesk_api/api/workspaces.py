"""工作空间管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_user, get_media_client
from formdesk_api.models.user import User
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.responses import (
    AssetData,
    DeletedData,
    InvitationData,
    MemberRoleData,
    WorkspaceData,
    WorkspaceDetailData,
    WorkspaceListData,
    WorkspaceMemberData,
)
from formdesk_api.schemas.workspace import (
    WorkspaceAssetCreateRequest,
    WorkspaceCreateRequest,
    WorkspaceInviteRequest,
    WorkspaceUpdateRequest,
)
from formdesk_api.services.assets import add_asset, delete_asset, list_assets
from formdesk_api.services.authorization import require
from formdesk_api.services.invitations import create_invitation
from formdesk_api.services.media import CloudinaryClient
from formdesk_api.services.membership import list_members
from formdesk_api.services.roles import PermissionAction, allowed_actions
from formdesk_api.services.workspaces import (
    create_workspace_with_owner,
    delete_workspace,
    get_workspace_detail,
    leave_workspace,
    list_user_workspaces,
    remove_workspace_member,
    rename_workspace,
)
from formdesk_api.utils.response import success

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

WORKSPACE_ID = Path(..., description="工作空间 ID。")

_AUTHZ_RESPONSES = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


def _asset_payload(asset) -> dict:
    return {
        "id": asset.id,
        "workspace_id": asset.workspace_id,
        "image_url": asset.image_url,
        "image_public_id": asset.image_public_id,
        "created_at": asset.created_at,
    }


@router.post(
    "",
    summary="创建工作空间",
    description="创建工作空间，并将创建者设为工作空间 OWNER。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[WorkspaceData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def create_workspace(
    payload: WorkspaceCreateRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    workspace = create_workspace_with_owner(db, owner=user, name=payload.name)
    db.commit()
    return success(
        request,
        {
            "id": workspace.id,
            "name": workspace.name,
            "owner_user_id": workspace.owner_user_id,
            "role": "OWNER",
            "created_at": workspace.created_at,
        },
        message="工作空间已创建。",
    )


@router.get(
    "",
    summary="查询我的工作空间",
    description="按“拥有 / 加入”分组返回当前用户的工作空间。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[WorkspaceListData],
    responses={401: {"model": ErrorResponse}},
)
def list_workspaces(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success(request, list_user_workspaces(db, user=user))


@router.get(
    "/{workspace_id}",
    summary="查询工作空间详情",
    description="返回工作空间基础信息、表单列表与成员列表。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[WorkspaceDetailData],
    responses=_AUTHZ_RESPONSES,
)
def get_workspace(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success(request, get_workspace_detail(db, workspace_id=workspace_id, actor=user))


@router.patch(
    "/{workspace_id}",
    summary="重命名工作空间",
    description="仅工作空间所有者可操作。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[WorkspaceData],
    responses=_AUTHZ_RESPONSES,
)
def update_workspace(
    payload: WorkspaceUpdateRequest,
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    workspace = rename_workspace(db, workspace_id=workspace_id, actor=user, name=payload.name)
    data = {
        "id": workspace.id,
        "name": workspace.name,
        "owner_user_id": workspace.owner_user_id,
        "role": "OWNER",
        "created_at": workspace.created_at,
    }
    db.commit()
    return success(request, data, message="工作空间已更新。")


@router.delete(
    "/{workspace_id}",
    summary="删除工作空间",
    description="仅所有者可操作；级联删除表单、成员、邀请与素材，并清理远程媒体。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses={**_AUTHZ_RESPONSES, 500: {"model": ErrorResponse}},
)
def remove_workspace(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media_client: CloudinaryClient = Depends(get_media_client),
):
    delete_workspace(db, workspace_id=workspace_id, actor=user, media_client=media_client)
    db.commit()
    return success(request, {"id": workspace_id, "deleted": True}, message="工作空间已删除。")


@router.get(
    "/{workspace_id}/members",
    summary="查询工作空间成员",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[WorkspaceMemberData]],
    responses=_AUTHZ_RESPONSES,
)
def get_members(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require(db, user_id=user.id, workspace_id=workspace_id, action=PermissionAction.MEMBER_READ)
    return success(request, list_members(db, workspace_id=workspace_id))


@router.get(
    "/{workspace_id}/member/role",
    summary="查询我在工作空间中的角色",
    description="返回当前用户角色及其允许的动作列表，供前端按钮级鉴权使用。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MemberRoleData],
    responses=_AUTHZ_RESPONSES,
)
def get_member_role(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    decision = require(db, user_id=user.id, workspace_id=workspace_id, action=PermissionAction.WORKSPACE_READ)
    return success(
        request,
        {
            "workspace_id": workspace_id,
            "role": decision.role,
            "allowed_actions": allowed_actions(decision.role),
        },
    )


@router.post(
    "/{workspace_id}/invite",
    summary="邀请成员",
    description="ADMIN 及以上可邀请已注册用户，邀请 7 天内有效。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[InvitationData],
    responses={**_AUTHZ_RESPONSES, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def invite_member(
    payload: WorkspaceInviteRequest,
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invitation = create_invitation(
        db,
        email=payload.email,
        workspace_id=workspace_id,
        role=payload.role,
        inviter=user,
    )
    data = {
        "id": invitation.id,
        "workspace_id": invitation.workspace_id,
        "email": invitation.email,
        "role": invitation.role,
        "status": invitation.status,
        "token": invitation.token,
        "expires_at": invitation.expires_at,
    }
    db.commit()
    return success(request, data, message="邀请已发送。")


@router.delete(
    "/{workspace_id}/leave",
    summary="退出工作空间",
    description="非所有者成员主动退出；所有者不可退出。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses=_AUTHZ_RESPONSES,
)
def leave(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    leave_workspace(db, workspace_id=workspace_id, user=user)
    db.commit()
    return success(request, {"id": workspace_id, "deleted": True}, message="已退出工作空间。")


@router.delete(
    "/{workspace_id}/members/{user_id}",
    summary="移除成员",
    description="ADMIN 及以上可移除非所有者成员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses=_AUTHZ_RESPONSES,
)
def remove_member(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user_id: UUID = Path(..., description="被移除成员的用户 ID。"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    remove_workspace_member(db, workspace_id=workspace_id, actor=user, target_user_id=user_id)
    db.commit()
    return success(request, {"id": user_id, "deleted": True}, message="成员已移除。")


@router.get(
    "/{workspace_id}/assets",
    summary="查询工作空间素材",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[AssetData]],
    responses=_AUTHZ_RESPONSES,
)
def get_assets(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assets = list_assets(db, workspace_id=workspace_id, actor=user)
    return success(request, [_asset_payload(asset) for asset in assets])


@router.post(
    "/{workspace_id}/assets",
    summary="登记工作空间素材",
    description="登记已直传到远程存储的图片，每个工作空间最多 10 个。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AssetData],
    responses={**_AUTHZ_RESPONSES, 409: {"model": ErrorResponse}},
)
def create_asset(
    payload: WorkspaceAssetCreateRequest,
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    asset = add_asset(
        db,
        workspace_id=workspace_id,
        actor=user,
        image_url=payload.image_url,
        image_public_id=payload.image_public_id,
    )
    data = _asset_payload(asset)
    db.commit()
    return success(request, data, message="素材已保存。")


@router.delete(
    "/{workspace_id}/assets/{asset_id}",
    summary="删除工作空间素材",
    description="先删除远程资源，成功后删除素材记录。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses={**_AUTHZ_RESPONSES, 500: {"model": ErrorResponse}},
)
def remove_asset(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    asset_id: UUID = Path(..., description="素材 ID。"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media_client: CloudinaryClient = Depends(get_media_client),
):
    delete_asset(db, workspace_id=workspace_id, asset_id=asset_id, actor=user, media_client=media_client)
    db.commit()
    return success(request, {"id": asset_id, "deleted": True}, message="素材已删除。")
