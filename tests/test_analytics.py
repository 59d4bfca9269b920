from uuid import uuid4

import pytest
from sqlalchemy import insert

from formdesk_api.exceptions import ForbiddenError, NotFoundError, ValidationError
from formdesk_api.models.enums import DeviceType, WorkspaceRole
from formdesk_api.models.form import FormAnalyticsSummary, FormVisit
from formdesk_api.services import analytics as analytics_service
from formdesk_api.services.analytics import detect_device_type, format_conversion_rate, get_form_analytics, track_form_visit
from formdesk_api.services.forms import create_form, submit_form_response, toggle_form_status

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15"
DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0"


@pytest.fixture
def published_form(db_session, make_user, make_workspace):
    owner = make_user("owner@example.com")
    viewer = make_user("viewer@example.com")
    outsider = make_user("outsider@example.com")
    workspace = make_workspace(owner, members={viewer: WorkspaceRole.VIEWER})
    form = create_form(db_session, workspace_id=workspace.id, actor=owner, title="Poll")
    toggle_form_status(db_session, workspace_id=workspace.id, form_id=form.id, actor=owner)
    return {"owner": owner, "viewer": viewer, "outsider": outsider, "workspace": workspace, "form": form}


@pytest.mark.parametrize(
    ("user_agent", "expected"),
    [
        (IPHONE_UA, DeviceType.MOBILE),
        ("Mozilla/5.0 (Linux; ANDROID 14)", DeviceType.MOBILE),
        ("Opera/9.80 (J2ME/MIDP; Opera Mini/9.80)", DeviceType.MOBILE),
        (DESKTOP_UA, DeviceType.DESKTOP),
        ("curl/8.4.0", DeviceType.DESKTOP),
    ],
)
def test_detect_device_type(user_agent, expected):
    assert detect_device_type(user_agent) == expected


def test_conversion_rate_formatting():
    assert format_conversion_rate(0, 0) == "0.00"
    assert format_conversion_rate(3, 1) == "33.33"
    assert format_conversion_rate(4, 4) == "100.00"


def test_visits_accumulate_in_summary(db_session, published_form):
    ctx = published_form
    form_id = ctx["form"].id
    track_form_visit(db_session, form_id=form_id, user_agent=IPHONE_UA)
    track_form_visit(db_session, form_id=form_id, user_agent=DESKTOP_UA)
    track_form_visit(db_session, form_id=form_id, user_agent=DESKTOP_UA)
    submit_form_response(db_session, form_id=form_id, content={"answer": "yes"})

    data = get_form_analytics(db_session, workspace_id=ctx["workspace"].id, form_id=form_id, actor=ctx["viewer"])

    assert data["total_visits"] == 3
    assert data["total_submissions"] == 1
    assert data["conversion_rate"] == "33.33"
    assert data["device_breakdown"] == {"mobile": 1, "desktop": 2}


def test_analytics_without_visits_is_not_found(db_session, published_form):
    ctx = published_form
    with pytest.raises(NotFoundError):
        get_form_analytics(db_session, workspace_id=ctx["workspace"].id, form_id=ctx["form"].id, actor=ctx["owner"])


def test_analytics_requires_membership(db_session, published_form):
    ctx = published_form
    track_form_visit(db_session, form_id=ctx["form"].id, user_agent=DESKTOP_UA)
    with pytest.raises(ForbiddenError):
        get_form_analytics(db_session, workspace_id=ctx["workspace"].id, form_id=ctx["form"].id, actor=ctx["outsider"])


def test_visit_requires_user_agent(db_session, published_form):
    with pytest.raises(ValidationError):
        track_form_visit(db_session, form_id=published_form["form"].id, user_agent=None)


def test_visit_on_unpublished_form_is_forbidden(db_session, published_form):
    ctx = published_form
    toggle_form_status(db_session, workspace_id=ctx["workspace"].id, form_id=ctx["form"].id, actor=ctx["owner"])
    with pytest.raises(ForbiddenError):
        track_form_visit(db_session, form_id=ctx["form"].id, user_agent=DESKTOP_UA)


def test_concurrent_first_visit_falls_back_to_increment(db_session, published_form, monkeypatch):
    ctx = published_form
    form_id = ctx["form"].id
    real_increment = analytics_service._increment_summary
    calls: list[int] = []

    def racing_increment(db, *, form_id, is_mobile):
        matched = real_increment(db, form_id=form_id, is_mobile=is_mobile)
        calls.append(matched)
        if len(calls) == 1:
            # 另一请求在本次更新之后抢先插入了汇总行。
            db.execute(
                insert(FormAnalyticsSummary).values(
                    id=uuid4(), form_id=form_id, total_visits=1, mobile_visits=1, desktop_visits=0
                )
            )
        return matched

    monkeypatch.setattr(analytics_service, "_increment_summary", racing_increment)

    visit = track_form_visit(db_session, form_id=form_id, user_agent=DESKTOP_UA)

    assert calls == [0, 1]
    assert db_session.get(FormVisit, visit.id) is not None
    data = get_form_analytics(db_session, workspace_id=ctx["workspace"].id, form_id=form_id, actor=ctx["owner"])
    assert data["total_visits"] == 2
    assert data["device_breakdown"] == {"mobile": 1, "desktop": 1}
