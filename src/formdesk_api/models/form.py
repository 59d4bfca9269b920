"""表单、页面、提交与访问分析模型。"""

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from formdesk_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from formdesk_api.models.enums import FormTheme


class Form(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """表单实体，隶属且仅隶属于一个工作空间。"""

    __tablename__ = "forms"

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    theme: Mapped[str] = mapped_column(String(32), nullable=False, default=FormTheme.BOXY)
    # 是否已发布；未发布的表单对公众不可见、不可提交。
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FormPage(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """表单页面，页码在表单内从 1 开始严格连续递增。"""

    __tablename__ = "form_pages"
    __table_args__ = (
        UniqueConstraint("form_id", "page", name="uk_form_page"),
        CheckConstraint("page >= 1", name="page_positive"),
    )

    form_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    page: Mapped[int] = mapped_column(Integer, nullable=False)
    # 页面内容（前端编辑器产出的 JSON），新建页面为空。
    content: Mapped[Any | None] = mapped_column(JSON)


class Submission(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """公开提交记录，只追加不修改。"""

    __tablename__ = "submissions"

    form_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    content: Mapped[Any] = mapped_column(JSON, nullable=False)


class FormVisit(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """单次表单访问事件。"""

    __tablename__ = "form_visits"

    form_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    device_type: Mapped[str] = mapped_column(String(16), nullable=False)


class FormAnalyticsSummary(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """表单访问汇总，与访问事件在同一事务内更新。"""

    __tablename__ = "form_analytics_summaries"

    form_id: Mapped[UUID] = mapped_column(nullable=False, unique=True)
    total_visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mobile_visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    desktop_visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
