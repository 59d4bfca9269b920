"""表单管理与公开表单接口。

`workspace_router` 下的接口都需要登录并按工作空间角色授权；
`public_router` 下的接口面向填写者，不要求登录，仅对已发布表单开放。
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_user
from formdesk_api.models.user import User
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.form import FormCreateRequest, PageContentUpdateRequest, SubmissionCreateRequest
from formdesk_api.schemas.responses import (
    DeletedData,
    FormData,
    FormPageData,
    FormStatusData,
    FormWithPageData,
    PublicFormData,
    SubmissionData,
)
from formdesk_api.services.forms import (
    create_form,
    create_next_page,
    delete_form,
    get_form_page,
    get_published_form,
    list_submissions,
    submit_form_response,
    toggle_form_status,
    update_page_content,
)
from formdesk_api.utils.response import success

workspace_router = APIRouter(prefix="/workspaces/{workspace_id}/forms", tags=["forms"])
public_router = APIRouter(prefix="/forms", tags=["public-forms"])

WORKSPACE_ID = Path(..., description="工作空间 ID。")
FORM_ID = Path(..., description="表单 ID。")
PAGE_NUMBER = Query(..., alias="p", ge=1, description="页码（从 1 开始）。")

_AUTHZ_RESPONSES = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


def _submission_payload(submission) -> dict:
    return {
        "id": submission.id,
        "form_id": submission.form_id,
        "content": submission.content,
        "created_at": submission.created_at,
    }


@workspace_router.post(
    "",
    summary="创建表单",
    description="EDITOR 及以上可创建；新表单默认未发布，并自带内容为空的第 1 页。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[FormData],
    responses={**_AUTHZ_RESPONSES, 400: {"model": ErrorResponse}},
)
def create_workspace_form(
    payload: FormCreateRequest,
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form = create_form(
        db,
        workspace_id=workspace_id,
        actor=user,
        title=payload.title,
        description=payload.description,
        theme=payload.theme,
    )
    data = {
        "id": form.id,
        "workspace_id": form.workspace_id,
        "title": form.title,
        "description": form.description,
        "theme": form.theme,
        "status": form.status,
        "created_at": form.created_at,
    }
    db.commit()
    return success(request, data, message="表单已创建。")


@workspace_router.delete(
    "/{form_id}",
    summary="删除表单",
    description="ADMIN 及以上可删除；同时删除页面、提交与访问统计。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses=_AUTHZ_RESPONSES,
)
def delete_workspace_form(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    delete_form(db, workspace_id=workspace_id, form_id=form_id, actor=user)
    db.commit()
    return success(request, {"id": form_id, "deleted": True}, message="表单已删除。")


@workspace_router.patch(
    "/{form_id}/status",
    summary="切换发布状态",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[FormStatusData],
    responses=_AUTHZ_RESPONSES,
)
def toggle_workspace_form_status(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form = toggle_form_status(db, workspace_id=workspace_id, form_id=form_id, actor=user)
    data = {"id": form.id, "title": form.title, "status": form.status}
    db.commit()
    return success(request, data, message="表单发布状态已更新。")


@workspace_router.get(
    "/{form_id}/responses",
    summary="查询表单提交",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[SubmissionData]],
    responses=_AUTHZ_RESPONSES,
)
def get_form_responses(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    submissions = list_submissions(db, workspace_id=workspace_id, form_id=form_id, actor=user)
    return success(request, [_submission_payload(item) for item in submissions])


@workspace_router.get(
    "/{form_id}/pages",
    summary="查询表单页面",
    description="返回表单基础信息、指定页面与总页数。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[FormWithPageData],
    responses=_AUTHZ_RESPONSES,
)
def get_page(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    page: int = PAGE_NUMBER,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = get_form_page(db, workspace_id=workspace_id, form_id=form_id, page=page, actor=user)
    return success(request, data, message=f"第 {page} 页查询成功。")


@workspace_router.patch(
    "/{form_id}/pages",
    summary="更新页面内容",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[FormPageData],
    responses={**_AUTHZ_RESPONSES, 400: {"model": ErrorResponse}},
)
def update_page(
    payload: PageContentUpdateRequest,
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    page: int = PAGE_NUMBER,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_page = update_page_content(
        db,
        workspace_id=workspace_id,
        form_id=form_id,
        page=page,
        content=payload.content,
        actor=user,
    )
    data = {"id": form_page.id, "page": form_page.page, "content": form_page.content}
    db.commit()
    return success(request, data, message="页面内容已更新。")


@workspace_router.post(
    "/{form_id}/pages/next",
    summary="新增下一页",
    description="`p` 必须等于表单当前最后一页的页码；新页页码为 p+1。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[FormPageData],
    responses={**_AUTHZ_RESPONSES, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def create_page(
    request: Request,
    workspace_id: UUID = WORKSPACE_ID,
    form_id: UUID = FORM_ID,
    page: int = PAGE_NUMBER,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_page = create_next_page(db, workspace_id=workspace_id, form_id=form_id, current_page=page, actor=user)
    data = {"id": form_page.id, "page": form_page.page, "content": form_page.content}
    db.commit()
    return success(request, data, message=f"第 {data['page']} 页已创建。")


@public_router.get(
    "/{form_id}",
    summary="读取公开表单",
    description="仅已发布表单可读取，页面按页码升序返回。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PublicFormData],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_public_form(
    request: Request,
    form_id: UUID = FORM_ID,
    db: Session = Depends(get_db),
):
    return success(request, get_published_form(db, form_id=form_id))


@public_router.post(
    "/{form_id}/submissions",
    summary="提交表单",
    description="仅已发布表单可提交。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[SubmissionData],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def submit_public_form(
    payload: SubmissionCreateRequest,
    request: Request,
    form_id: UUID = FORM_ID,
    db: Session = Depends(get_db),
):
    submission = submit_form_response(db, form_id=form_id, content=payload.content)
    data = _submission_payload(submission)
    db.commit()
    return success(request, data, message="提交成功。")
