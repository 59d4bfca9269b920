"""远程媒体直传签名与清理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_user, get_media_client
from formdesk_api.models.enums import MediaContextType
from formdesk_api.models.user import User
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.form import MediaSignedUrlRequest
from formdesk_api.schemas.responses import MediaDeleteData, SignedUploadData
from formdesk_api.services.assets import purge_workspace_media
from formdesk_api.services.authorization import require, require_form_by_id
from formdesk_api.services.media import CloudinaryClient, context_tag
from formdesk_api.services.roles import PermissionAction
from formdesk_api.utils.response import success

router = APIRouter(prefix="/media", tags=["media"])

_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _require_signing_access(db: Session, *, user: User, context_type: MediaContextType, context_id: UUID) -> None:
    """工作空间素材按素材权限校验；表单媒体按表单所在工作空间的编辑权限校验。"""
    if context_type == MediaContextType.WORKSPACE:
        require(db, user_id=user.id, workspace_id=context_id, action=PermissionAction.ASSET_CREATE)
        return
    require_form_by_id(db, user_id=user.id, form_id=context_id, action=PermissionAction.FORM_UPDATE)


@router.post(
    "/signed-url",
    summary="生成直传签名",
    description="为客户端直传远程存储生成签名表单字段；PDF 以原始文件类型上传。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SignedUploadData],
    responses={**_RESPONSES, 400: {"model": ErrorResponse}},
)
def create_signed_url(
    payload: MediaSignedUrlRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media_client: CloudinaryClient = Depends(get_media_client),
):
    _require_signing_access(db, user=user, context_type=payload.type, context_id=payload.id)
    upload = media_client.build_signed_upload(
        file_type=payload.file_type,
        context_type=payload.type,
        context_id=payload.id,
    )
    return success(
        request,
        {"upload_url": upload.upload_url, "form_data": upload.form_data, "file_id": upload.file_id},
        message="直传签名已生成。",
    )


@router.delete(
    "",
    summary="按业务对象清理媒体",
    description="删除带 `<type>_<id>` 标签的全部远程资源；工作空间清理同时删除其素材记录。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MediaDeleteData],
    responses=_RESPONSES,
)
def delete_media(
    request: Request,
    context_type: MediaContextType = Query(..., alias="type", description="业务对象类型。"),
    context_id: UUID = Query(..., alias="id", description="业务对象 ID。"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media_client: CloudinaryClient = Depends(get_media_client),
):
    if context_type == MediaContextType.WORKSPACE:
        result = purge_workspace_media(db, workspace_id=context_id, actor=user, media_client=media_client)
        db.commit()
    else:
        require_form_by_id(db, user_id=user.id, form_id=context_id, action=PermissionAction.FORM_UPDATE)
        result = media_client.purge_context(context_type, context_id)
    return success(
        request,
        {"tag": context_tag(context_type, context_id), "result": result},
        message="媒体已清理。",
    )
