"""当前用户的邀请处理接口。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_user
from formdesk_api.models.user import User
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.responses import InvitationAcceptData, InvitationRejectData, PendingInvitationData
from formdesk_api.schemas.workspace import InvitationTokenRequest
from formdesk_api.services.invitations import accept_invitation, list_pending_invitations, reject_invitation
from formdesk_api.utils.response import success

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/invitations",
    summary="查询我的待处理邀请",
    description="返回发给当前用户、仍待处理且未过期的工作空间邀请。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PendingInvitationData]],
    responses={401: {"model": ErrorResponse}},
)
def list_my_invitations(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success(request, list_pending_invitations(db, user=user))


@router.post(
    "/invitations/accept",
    summary="接受邀请",
    description="接受邀请并加入工作空间。邀请不存在、已处理或已过期时统一返回 404。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[InvitationAcceptData],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def accept_my_invitation(
    payload: InvitationTokenRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invitation, membership = accept_invitation(db, token=payload.token, user=user)
    data = {
        "invitation_id": invitation.id,
        "workspace_id": membership.workspace_id,
        "role": membership.role,
        "status": invitation.status,
    }
    db.commit()
    return success(request, data, message="已加入工作空间。")


@router.patch(
    "/invitations/reject",
    summary="拒绝邀请",
    description="拒绝邀请。失败时依次区分：不存在 404、已处理 409、已过期 410、非本人 403。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[InvitationRejectData],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
    },
)
def reject_my_invitation(
    payload: InvitationTokenRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invitation = reject_invitation(db, token=payload.token, user=user)
    data = {"invitation_id": invitation.id, "status": invitation.status}
    db.commit()
    return success(request, data, message="已拒绝邀请。")
