from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from formdesk_api.exceptions import (
    ConflictError,
    ForbiddenError,
    GoneError,
    InvitationInvalidError,
    NotFoundError,
    ValidationError,
)
from formdesk_api.models.enums import InvitationStatus, WorkspaceRole
from formdesk_api.models.workspace import WorkspaceMember
from formdesk_api.services import invitations as invitations_service
from formdesk_api.services.invitations import (
    accept_invitation,
    create_invitation,
    list_pending_invitations,
    reject_invitation,
)
from formdesk_api.services.membership import add_member, get_role


@pytest.fixture
def setup(db_session, make_user, make_workspace):
    owner = make_user("owner@example.com", name="Owner")
    admin = make_user("admin@example.com")
    editor = make_user("editor@example.com")
    invitee = make_user("invitee@example.com")
    outsider = make_user("outsider@example.com")
    workspace = make_workspace(owner, members={admin: WorkspaceRole.ADMIN, editor: WorkspaceRole.EDITOR})
    return {
        "owner": owner,
        "admin": admin,
        "editor": editor,
        "invitee": invitee,
        "outsider": outsider,
        "workspace": workspace,
    }


def _invite(db_session, setup, *, role=WorkspaceRole.EDITOR, inviter="admin"):
    return create_invitation(
        db_session,
        email="invitee@example.com",
        workspace_id=setup["workspace"].id,
        role=role,
        inviter=setup[inviter],
    )


def _expire(db_session, invitation):
    invitation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db_session.flush()


def test_create_invitation_sets_pending_token_and_expiry(db_session, setup):
    before = datetime.now(timezone.utc)
    invitation = _invite(db_session, setup)

    assert invitation.status == InvitationStatus.PENDING
    assert invitation.user_id == setup["invitee"].id
    assert invitation.inviter_user_id == setup["admin"].id
    assert len(invitation.token) >= 43
    expires_at = invitation.expires_at
    assert before + timedelta(days=7) <= expires_at <= datetime.now(timezone.utc) + timedelta(days=7)


def test_tokens_are_unique(db_session, setup, make_user):
    first = _invite(db_session, setup)
    make_user("second@example.com")
    second = create_invitation(
        db_session,
        email="second@example.com",
        workspace_id=setup["workspace"].id,
        role=WorkspaceRole.VIEWER,
        inviter=setup["owner"],
    )
    assert first.token != second.token


@pytest.mark.parametrize("inviter", ["editor", "outsider"])
def test_create_requires_admin_membership(db_session, setup, inviter):
    with pytest.raises(ForbiddenError):
        _invite(db_session, setup, inviter=inviter)


def test_create_rejects_unregistered_invitee(db_session, setup):
    with pytest.raises(ValidationError) as exc_info:
        create_invitation(
            db_session,
            email="nobody@example.com",
            workspace_id=setup["workspace"].id,
            role=WorkspaceRole.VIEWER,
            inviter=setup["admin"],
        )
    assert exc_info.value.code == "INVITEE_NOT_REGISTERED"


def test_create_rejects_self_invite(db_session, setup):
    with pytest.raises(ValidationError) as exc_info:
        create_invitation(
            db_session,
            email="ADMIN@example.com ",
            workspace_id=setup["workspace"].id,
            role=WorkspaceRole.VIEWER,
            inviter=setup["admin"],
        )
    assert exc_info.value.code == "CANNOT_INVITE_SELF"


def test_create_rejects_existing_member(db_session, setup):
    with pytest.raises(ConflictError):
        create_invitation(
            db_session,
            email="editor@example.com",
            workspace_id=setup["workspace"].id,
            role=WorkspaceRole.VIEWER,
            inviter=setup["admin"],
        )


def test_create_rejects_duplicate_pending_invitation(db_session, setup):
    _invite(db_session, setup)
    with pytest.raises(ConflictError) as exc_info:
        _invite(db_session, setup, inviter="owner")
    assert exc_info.value.code == "INVITATION_ALREADY_PENDING"


def test_expired_pending_invitation_does_not_block_new_one(db_session, setup):
    first = _invite(db_session, setup)
    _expire(db_session, first)
    second = _invite(db_session, setup)
    assert second.token != first.token


def test_create_rejects_owner_role(db_session, setup):
    with pytest.raises(ValidationError):
        _invite(db_session, setup, role=WorkspaceRole.OWNER)


def test_accept_grants_invited_role(db_session, setup):
    invitation = _invite(db_session, setup, role=WorkspaceRole.EDITOR)

    accepted, membership = accept_invitation(db_session, token=invitation.token, user=setup["invitee"])

    assert accepted.status == InvitationStatus.ACCEPTED
    assert membership.role == WorkspaceRole.EDITOR
    assert get_role(db_session, workspace_id=setup["workspace"].id, user_id=setup["invitee"].id) == WorkspaceRole.EDITOR


def test_accept_twice_is_invalid(db_session, setup):
    invitation = _invite(db_session, setup)
    accept_invitation(db_session, token=invitation.token, user=setup["invitee"])

    with pytest.raises(InvitationInvalidError) as exc_info:
        accept_invitation(db_session, token=invitation.token, user=setup["invitee"])
    assert exc_info.value.status_code == 404


def test_accept_unknown_or_expired_is_invalid(db_session, setup):
    with pytest.raises(InvitationInvalidError):
        accept_invitation(db_session, token="missing", user=setup["invitee"])

    invitation = _invite(db_session, setup)
    _expire(db_session, invitation)
    with pytest.raises(InvitationInvalidError):
        accept_invitation(db_session, token=invitation.token, user=setup["invitee"])
    assert get_role(db_session, workspace_id=setup["workspace"].id, user_id=setup["invitee"].id) is None


def test_accept_by_other_user_is_forbidden(db_session, setup):
    invitation = _invite(db_session, setup)
    with pytest.raises(ForbiddenError):
        accept_invitation(db_session, token=invitation.token, user=setup["outsider"])
    db_session.refresh(invitation)
    assert invitation.status == InvitationStatus.PENDING


def test_accept_when_already_member_conflicts(db_session, setup):
    invitation = _invite(db_session, setup)
    add_member(
        db_session,
        workspace_id=setup["workspace"].id,
        user_id=setup["invitee"].id,
        role=WorkspaceRole.VIEWER,
    )
    with pytest.raises(ConflictError):
        accept_invitation(db_session, token=invitation.token, user=setup["invitee"])


def test_reject_marks_rejected_and_closes_expiry(db_session, setup):
    invitation = _invite(db_session, setup)
    rejected = reject_invitation(db_session, token=invitation.token, user=setup["invitee"])

    assert rejected.status == InvitationStatus.REJECTED
    expires_at = rejected.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    assert expires_at <= datetime.now(timezone.utc)
    assert get_role(db_session, workspace_id=setup["workspace"].id, user_id=setup["invitee"].id) is None


def test_reject_unknown_token_is_not_found(db_session, setup):
    with pytest.raises(NotFoundError) as exc_info:
        reject_invitation(db_session, token="missing", user=setup["invitee"])
    assert not isinstance(exc_info.value, InvitationInvalidError)


def test_second_reject_is_conflict(db_session, setup):
    invitation = _invite(db_session, setup)
    reject_invitation(db_session, token=invitation.token, user=setup["invitee"])
    with pytest.raises(ConflictError):
        reject_invitation(db_session, token=invitation.token, user=setup["invitee"])


def test_reject_after_accept_is_conflict(db_session, setup):
    invitation = _invite(db_session, setup)
    accept_invitation(db_session, token=invitation.token, user=setup["invitee"])
    with pytest.raises(ConflictError):
        reject_invitation(db_session, token=invitation.token, user=setup["invitee"])


def test_reject_expired_is_gone(db_session, setup):
    invitation = _invite(db_session, setup)
    _expire(db_session, invitation)
    with pytest.raises(GoneError):
        reject_invitation(db_session, token=invitation.token, user=setup["invitee"])


def test_reject_by_other_user_is_forbidden(db_session, setup):
    invitation = _invite(db_session, setup)
    with pytest.raises(ForbiddenError):
        reject_invitation(db_session, token=invitation.token, user=setup["outsider"])


def test_reject_diagnosis_prefers_expired_over_ownership(db_session, setup):
    invitation = _invite(db_session, setup)
    _expire(db_session, invitation)
    with pytest.raises(GoneError):
        reject_invitation(db_session, token=invitation.token, user=setup["outsider"])


def test_reject_diagnosis_prefers_processed_over_expired(db_session, setup):
    invitation = _invite(db_session, setup)
    accept_invitation(db_session, token=invitation.token, user=setup["invitee"])
    _expire(db_session, invitation)
    with pytest.raises(ConflictError):
        reject_invitation(db_session, token=invitation.token, user=setup["outsider"])


def test_list_pending_invitations_only_returns_open_ones(db_session, setup, make_user, make_workspace):
    other_owner = make_user("other@example.com")
    other_workspace = make_workspace(other_owner, name="other team")
    open_invitation = _invite(db_session, setup)
    closed = create_invitation(
        db_session,
        email="invitee@example.com",
        workspace_id=other_workspace.id,
        role=WorkspaceRole.VIEWER,
        inviter=other_owner,
    )
    reject_invitation(db_session, token=closed.token, user=setup["invitee"])

    items = list_pending_invitations(db_session, user=setup["invitee"])

    assert [item["id"] for item in items] == [open_invitation.id]
    assert items[0]["workspace_name"] == "team"
    assert items[0]["role"] == "EDITOR"
    assert list_pending_invitations(db_session, user=setup["outsider"]) == []


def test_racing_accept_loses_on_conditional_update(db_session, setup, monkeypatch):
    invitation = _invite(db_session, setup, role=WorkspaceRole.EDITOR)
    # 并发请求在首个接受提交前读到的快照：仍为 PENDING，且尚无成员关系。
    stale = SimpleNamespace(
        id=invitation.id,
        email=invitation.email,
        user_id=invitation.user_id,
        workspace_id=invitation.workspace_id,
        role=invitation.role,
        status=InvitationStatus.PENDING,
        expires_at=invitation.expires_at,
    )
    accept_invitation(db_session, token=invitation.token, user=setup["invitee"])

    monkeypatch.setattr(invitations_service, "get_invitation_by_token", lambda db, *, token: stale)
    monkeypatch.setattr(invitations_service, "get_membership", lambda db, *, workspace_id, user_id: None)

    with pytest.raises(InvitationInvalidError):
        accept_invitation(db_session, token=invitation.token, user=setup["invitee"])

    memberships = db_session.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == setup["workspace"].id,
            WorkspaceMember.user_id == setup["invitee"].id,
        )
    ).scalars().all()
    assert len(memberships) == 1
    assert memberships[0].role == WorkspaceRole.EDITOR
