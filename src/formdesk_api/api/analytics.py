"""表单访问统计接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Path, Request, status
from sqlalchemy.orm import Session

from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_user
from formdesk_api.models.user import User
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.responses import FormAnalyticsData, VisitData
from formdesk_api.services.analytics import get_form_analytics, track_form_visit
from formdesk_api.utils.response import success

router = APIRouter(tags=["analytics"])


@router.post(
    "/forms/{form_id}/visits",
    summary="记录表单访问",
    description="公开接口，按 User-Agent 区分移动端与桌面端，仅已发布表单可记录。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[VisitData],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def track_visit(
    request: Request,
    form_id: UUID = Path(..., description="表单 ID。"),
    user_agent: str | None = Header(default=None, alias="User-Agent"),
    db: Session = Depends(get_db),
):
    visit = track_form_visit(db, form_id=form_id, user_agent=user_agent)
    data = {"form_id": visit.form_id, "device_type": visit.device_type}
    db.commit()
    return success(request, data, message="访问已记录。")


@router.get(
    "/workspaces/{workspace_id}/forms/{form_id}/analytics",
    summary="查询表单访问统计",
    description="返回累计访问、提交、转化率与设备分布；尚无访问记录时返回 404。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[FormAnalyticsData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def fetch_analytics(
    request: Request,
    workspace_id: UUID = Path(..., description="工作空间 ID。"),
    form_id: UUID = Path(..., description="表单 ID。"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = get_form_analytics(db, workspace_id=workspace_id, form_id=form_id, actor=user)
    return success(request, data)
