"""端到端业务场景：两名用户、一个工作空间、一张表单。"""

import pytest

from formdesk_api.exceptions import ConflictError, ForbiddenError, InvitationInvalidError, ValidationError
from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.models.form import Form
from formdesk_api.services.analytics import get_form_analytics, track_form_visit
from formdesk_api.services.forms import (
    create_form,
    create_next_page,
    get_published_form,
    submit_form_response,
    toggle_form_status,
    update_page_content,
)
from formdesk_api.services.invitations import accept_invitation, create_invitation, reject_invitation
from formdesk_api.services.membership import get_role
from formdesk_api.services.workspaces import delete_workspace, leave_workspace, remove_workspace_member


@pytest.fixture
def world(db_session, make_user, make_workspace):
    a = make_user("a@example.com", name="A")
    b = make_user("b@example.com", name="B")
    w = make_workspace(a, name="W")
    return {"a": a, "b": b, "w": w}


def test_invited_editor_builds_and_publishes_form(db_session, world):
    a, b, w = world["a"], world["b"], world["w"]

    invitation = create_invitation(db_session, email=b.email, workspace_id=w.id, role=WorkspaceRole.EDITOR, inviter=a)
    accept_invitation(db_session, token=invitation.token, user=b)
    assert get_role(db_session, workspace_id=w.id, user_id=b.id) == WorkspaceRole.EDITOR

    form = create_form(db_session, workspace_id=w.id, actor=b, title="F")
    update_page_content(db_session, workspace_id=w.id, form_id=form.id, page=1, content={"q": "Name?"}, actor=b)
    create_next_page(db_session, workspace_id=w.id, form_id=form.id, current_page=1, actor=b)
    with pytest.raises(ValidationError):
        create_next_page(db_session, workspace_id=w.id, form_id=form.id, current_page=1, actor=b)

    with pytest.raises(ForbiddenError):
        submit_form_response(db_session, form_id=form.id, content={"q": "Ann"})
    toggle_form_status(db_session, workspace_id=w.id, form_id=form.id, actor=b)

    public = get_published_form(db_session, form_id=form.id)
    assert [page["page"] for page in public["pages"]] == [1, 2]

    track_form_visit(db_session, form_id=form.id, user_agent="Mozilla/5.0 (iPad; CPU OS 17_0)")
    track_form_visit(db_session, form_id=form.id, user_agent="Mozilla/5.0 (Macintosh)")
    submit_form_response(db_session, form_id=form.id, content={"q": "Ann"})

    analytics = get_form_analytics(db_session, workspace_id=w.id, form_id=form.id, actor=a)
    assert analytics["conversion_rate"] == "50.00"
    assert analytics["device_breakdown"] == {"mobile": 1, "desktop": 1}

    with pytest.raises(ForbiddenError):
        delete_workspace(db_session, workspace_id=w.id, actor=b)
    delete_workspace(db_session, workspace_id=w.id, actor=a)
    assert db_session.get(Form, form.id) is None
    assert get_role(db_session, workspace_id=w.id, user_id=b.id) is None


def test_invitation_is_single_use(db_session, world):
    a, b, w = world["a"], world["b"], world["w"]
    invitation = create_invitation(db_session, email=b.email, workspace_id=w.id, role=WorkspaceRole.VIEWER, inviter=a)

    accept_invitation(db_session, token=invitation.token, user=b)

    with pytest.raises(InvitationInvalidError):
        accept_invitation(db_session, token=invitation.token, user=b)
    with pytest.raises(ConflictError):
        reject_invitation(db_session, token=invitation.token, user=b)


def test_viewer_is_read_only_and_owner_is_permanent(db_session, world):
    a, b, w = world["a"], world["b"], world["w"]
    invitation = create_invitation(db_session, email=b.email, workspace_id=w.id, role=WorkspaceRole.VIEWER, inviter=a)
    accept_invitation(db_session, token=invitation.token, user=b)

    with pytest.raises(ForbiddenError):
        create_form(db_session, workspace_id=w.id, actor=b, title="F")
    with pytest.raises(ForbiddenError):
        remove_workspace_member(db_session, workspace_id=w.id, actor=b, target_user_id=a.id)
    with pytest.raises(ForbiddenError):
        leave_workspace(db_session, workspace_id=w.id, user=a)

    leave_workspace(db_session, workspace_id=w.id, user=b)
    assert get_role(db_session, workspace_id=w.id, user_id=b.id) is None
    assert get_role(db_session, workspace_id=w.id, user_id=a.id) == WorkspaceRole.OWNER
