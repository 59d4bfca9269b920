"""表单、页面与提交服务。

工作空间内的管理操作都先经过授权网关；公开访问路径（查看已发布表单、提交）
不要求登录，由本模块自行校验表单是否存在及是否已发布。
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formdesk_api.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from formdesk_api.models.enums import FormTheme
from formdesk_api.models.form import Form, FormAnalyticsSummary, FormPage, FormVisit, Submission
from formdesk_api.models.user import User
from formdesk_api.services.authorization import require, require_form
from formdesk_api.services.roles import PermissionAction

logger = logging.getLogger(__name__)


def _content_missing(content: Any) -> bool:
    return content is None or content == ""


def _page_payload(page: FormPage) -> dict:
    return {"id": page.id, "page": page.page, "content": page.content}


def _form_payload(form: Form) -> dict:
    return {
        "id": form.id,
        "workspace_id": form.workspace_id,
        "title": form.title,
        "description": form.description,
        "theme": form.theme,
        "status": form.status,
        "created_at": form.created_at,
    }


def _current_max_page(db: Session, *, form_id: UUID) -> int:
    """返回表单当前最大页码，无页面时为 0。"""
    return db.execute(select(func.max(FormPage.page)).where(FormPage.form_id == form_id)).scalar() or 0


def _count_pages(db: Session, *, form_id: UUID) -> int:
    return db.execute(select(func.count()).select_from(FormPage).where(FormPage.form_id == form_id)).scalar_one()


def _get_page(db: Session, *, form_id: UUID, page: int) -> FormPage | None:
    return db.execute(
        select(FormPage).where(FormPage.form_id == form_id).where(FormPage.page == page)
    ).scalar_one_or_none()


def get_form_or_404(db: Session, *, form_id: UUID) -> Form:
    form = db.get(Form, form_id)
    if form is None:
        raise NotFoundError("表单不存在。", code="FORM_NOT_FOUND")
    return form


def get_published_form_or_error(db: Session, *, form_id: UUID) -> Form:
    """公开路径的表单校验：不存在 404，未发布 403。"""
    form = get_form_or_404(db, form_id=form_id)
    if not form.status:
        raise ForbiddenError("表单尚未发布。", code="FORM_NOT_PUBLISHED")
    return form


def purge_forms(db: Session, *, form_ids: list[UUID]) -> None:
    """删除表单及其页面、提交、访问记录与汇总。"""
    if not form_ids:
        return
    db.execute(delete(FormPage).where(FormPage.form_id.in_(form_ids)))
    db.execute(delete(Submission).where(Submission.form_id.in_(form_ids)))
    db.execute(delete(FormVisit).where(FormVisit.form_id.in_(form_ids)))
    db.execute(delete(FormAnalyticsSummary).where(FormAnalyticsSummary.form_id.in_(form_ids)))
    db.execute(delete(Form).where(Form.id.in_(form_ids)))


def create_form(
    db: Session,
    *,
    workspace_id: UUID,
    actor: User,
    title: str,
    description: str | None = None,
    theme: FormTheme = FormTheme.BOXY,
) -> Form:
    """创建未发布表单，并同时创建内容为空的第 1 页。"""
    require(db, user_id=actor.id, workspace_id=workspace_id, action=PermissionAction.FORM_CREATE)
    normalized_title = title.strip()
    if not normalized_title:
        raise ValidationError("表单标题不能为空。", code="INVALID_FORM_TITLE")

    form = Form(
        workspace_id=workspace_id,
        title=normalized_title,
        description=description,
        theme=FormTheme(theme),
        status=False,
    )
    db.add(form)
    db.flush()
    db.add(FormPage(form_id=form.id, page=1, content=None))
    db.flush()
    logger.info("form created form_id=%s workspace_id=%s actor=%s", form.id, workspace_id, actor.id)
    return form


def delete_form(db: Session, *, workspace_id: UUID, form_id: UUID, actor: User) -> None:
    require_form(db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.FORM_DELETE)
    purge_forms(db, form_ids=[form_id])
    db.flush()
    logger.info("form deleted form_id=%s workspace_id=%s actor=%s", form_id, workspace_id, actor.id)


def toggle_form_status(db: Session, *, workspace_id: UUID, form_id: UUID, actor: User) -> Form:
    """切换发布状态。"""
    form, _ = require_form(
        db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.FORM_PUBLISH
    )
    form.status = not form.status
    db.flush()
    logger.info("form status changed form_id=%s published=%s", form.id, form.status)
    return form


def get_form_page(db: Session, *, workspace_id: UUID, form_id: UUID, page: int, actor: User) -> dict:
    """返回表单基本信息、指定页面与总页数。"""
    form, _ = require_form(
        db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.FORM_READ
    )
    form_page = _get_page(db, form_id=form_id, page=page)
    if form_page is None:
        raise NotFoundError(f"表单不存在第 {page} 页。", code="PAGE_NOT_FOUND")
    return {
        **_form_payload(form),
        "pages": [_page_payload(form_page)],
        "total_pages": _count_pages(db, form_id=form_id),
    }


def update_page_content(
    db: Session,
    *,
    workspace_id: UUID,
    form_id: UUID,
    page: int,
    content: Any,
    actor: User,
) -> FormPage:
    require_form(db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.PAGE_UPDATE)
    if _content_missing(content):
        raise ValidationError(f"第 {page} 页内容不能为空。", code="PAGE_CONTENT_MISSING")
    form_page = _get_page(db, form_id=form_id, page=page)
    if form_page is None:
        raise NotFoundError(f"表单不存在第 {page} 页。", code="PAGE_NOT_FOUND")
    form_page.content = content
    db.flush()
    return form_page


def create_next_page(
    db: Session,
    *,
    workspace_id: UUID,
    form_id: UUID,
    current_page: int,
    actor: User,
) -> FormPage:
    """在当前最后一页之后追加新页，页码保持从 1 开始连续。

    调用方声明的当前页必须等于表单最大页码，否则 400；
    目标页已存在（包括并发插入撞唯一约束）时 409。
    """
    require_form(db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.PAGE_CREATE)
    max_page = _current_max_page(db, form_id=form_id)
    if current_page != max_page:
        raise ValidationError(
            f"只能在最后一页（第 {max_page} 页）之后新增页面。",
            code="PAGE_OUT_OF_SEQUENCE",
            details={"current_page": current_page, "max_page": max_page},
        )

    next_page = current_page + 1
    if _get_page(db, form_id=form_id, page=next_page) is not None:
        raise ConflictError(f"第 {next_page} 页已存在。", code="PAGE_ALREADY_EXISTS")

    form_page = FormPage(form_id=form_id, page=next_page, content=None)
    db.add(form_page)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError(f"第 {next_page} 页已存在。", code="PAGE_ALREADY_EXISTS") from exc
    logger.info("form page created form_id=%s page=%s", form_id, next_page)
    return form_page


def list_submissions(db: Session, *, workspace_id: UUID, form_id: UUID, actor: User) -> list[Submission]:
    require_form(
        db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.SUBMISSION_READ
    )
    return list(
        db.execute(
            select(Submission).where(Submission.form_id == form_id).order_by(Submission.created_at.desc())
        ).scalars()
    )


def get_published_form(db: Session, *, form_id: UUID) -> dict:
    """公开读取已发布表单，页面按页码升序。"""
    form = get_published_form_or_error(db, form_id=form_id)
    pages = db.execute(select(FormPage).where(FormPage.form_id == form_id).order_by(FormPage.page)).scalars()
    payload = _form_payload(form)
    payload.pop("workspace_id")
    payload["pages"] = [_page_payload(page) for page in pages]
    return payload


def submit_form_response(db: Session, *, form_id: UUID, content: Any) -> Submission:
    """公开提交，仅允许已发布表单。"""
    get_published_form_or_error(db, form_id=form_id)
    if _content_missing(content):
        raise ValidationError("提交内容不能为空。", code="SUBMISSION_CONTENT_MISSING")
    submission = Submission(form_id=form_id, content=content)
    db.add(submission)
    db.flush()
    logger.info("form submission created form_id=%s submission_id=%s", form_id, submission.id)
    return submission
