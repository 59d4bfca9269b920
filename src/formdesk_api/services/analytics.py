"""表单访问统计。"""

import logging
import re
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formdesk_api.exceptions import NotFoundError, ValidationError
from formdesk_api.models.enums import DeviceType
from formdesk_api.models.form import FormAnalyticsSummary, FormVisit, Submission
from formdesk_api.models.user import User
from formdesk_api.services.authorization import require_form
from formdesk_api.services.forms import get_published_form_or_error
from formdesk_api.services.roles import PermissionAction

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT_PATTERN = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)


def detect_device_type(user_agent: str) -> DeviceType:
    """根据 User-Agent 粗略区分移动端与桌面端。"""
    if MOBILE_USER_AGENT_PATTERN.search(user_agent):
        return DeviceType.MOBILE
    return DeviceType.DESKTOP


def _increment_summary(db: Session, *, form_id: UUID, is_mobile: bool) -> int:
    """SQL 端累加汇总计数，返回命中行数。"""
    result = db.execute(
        update(FormAnalyticsSummary)
        .where(FormAnalyticsSummary.form_id == form_id)
        .values(
            total_visits=FormAnalyticsSummary.total_visits + 1,
            mobile_visits=FormAnalyticsSummary.mobile_visits + (1 if is_mobile else 0),
            desktop_visits=FormAnalyticsSummary.desktop_visits + (0 if is_mobile else 1),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def track_form_visit(db: Session, *, form_id: UUID, user_agent: str | None) -> FormVisit:
    """记录一次访问并在同一事务内累加汇总计数。

    计数使用 SQL 端自增，避免并发访问时读改写丢失更新。
    首次访问并发插入汇总行时，落败方在保存点内回滚后改走自增。
    """
    if not user_agent or not user_agent.strip():
        raise ValidationError("缺少 User-Agent 请求头。", code="USER_AGENT_MISSING")
    get_published_form_or_error(db, form_id=form_id)

    device_type = detect_device_type(user_agent)
    is_mobile = device_type == DeviceType.MOBILE
    visit = FormVisit(form_id=form_id, device_type=device_type)
    db.add(visit)
    db.flush()

    if _increment_summary(db, form_id=form_id, is_mobile=is_mobile) == 0:
        try:
            with db.begin_nested():
                db.add(
                    FormAnalyticsSummary(
                        form_id=form_id,
                        total_visits=1,
                        mobile_visits=1 if is_mobile else 0,
                        desktop_visits=0 if is_mobile else 1,
                    )
                )
        except IntegrityError:
            logger.info("analytics summary created concurrently form_id=%s", form_id)
            _increment_summary(db, form_id=form_id, is_mobile=is_mobile)
    logger.debug("form visit tracked form_id=%s device=%s", form_id, device_type)
    return visit


def format_conversion_rate(total_visits: int, total_submissions: int) -> str:
    """转化率百分比，保留两位小数；无访问时为 0.00。"""
    rate = (total_submissions / total_visits) * 100 if total_visits > 0 else 0
    return f"{rate:.2f}"


def get_form_analytics(db: Session, *, workspace_id: UUID, form_id: UUID, actor: User) -> dict:
    require_form(
        db, user_id=actor.id, workspace_id=workspace_id, form_id=form_id, action=PermissionAction.ANALYTICS_READ
    )
    summary = db.execute(
        select(FormAnalyticsSummary)
        .where(FormAnalyticsSummary.form_id == form_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if summary is None:
        raise NotFoundError("该表单暂无访问统计数据。", code="ANALYTICS_NOT_FOUND")

    total_submissions = db.execute(
        select(func.count()).select_from(Submission).where(Submission.form_id == form_id)
    ).scalar_one()
    return {
        "form_id": form_id,
        "total_visits": summary.total_visits,
        "total_submissions": total_submissions,
        "conversion_rate": format_conversion_rate(summary.total_visits, total_submissions),
        "device_breakdown": {
            "mobile": summary.mobile_visits,
            "desktop": summary.desktop_visits,
        },
    }
