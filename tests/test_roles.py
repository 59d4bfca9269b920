import pytest

from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.services.roles import (
    MIN_ROLE_BY_ACTION,
    READ_ACTIONS,
    PermissionAction,
    allowed_actions,
    can_leave,
    can_remove_member,
    grantable_roles,
    permits,
    role_rank,
)

ROLES = [WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR, WorkspaceRole.VIEWER]


def test_role_order_is_total():
    ranks = [role_rank(role) for role in ROLES]
    assert ranks == sorted(ranks, reverse=True)
    assert len(set(ranks)) == len(ROLES)


def test_every_action_declares_min_role():
    assert set(MIN_ROLE_BY_ACTION) == set(PermissionAction)


@pytest.mark.parametrize(
    ("action", "expected"),
    [
        (PermissionAction.WORKSPACE_DELETE, {WorkspaceRole.OWNER}),
        (PermissionAction.WORKSPACE_UPDATE, {WorkspaceRole.OWNER}),
        (PermissionAction.MEMBER_INVITE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN}),
        (PermissionAction.MEMBER_REMOVE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN}),
        (PermissionAction.FORM_DELETE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN}),
        (PermissionAction.FORM_CREATE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR}),
        (PermissionAction.FORM_PUBLISH, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR}),
        (PermissionAction.PAGE_CREATE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR}),
        (PermissionAction.ASSET_DELETE, {WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR}),
        (PermissionAction.FORM_READ, set(ROLES)),
        (PermissionAction.ANALYTICS_READ, set(ROLES)),
    ],
)
def test_permission_matrix(action, expected):
    assert {role for role in ROLES if permits(role, action)} == expected


@pytest.mark.parametrize("action", list(PermissionAction))
def test_permits_is_monotonic(action):
    allowed = [permits(role, action) for role in reversed(ROLES)]
    # 从 VIEWER 到 OWNER 一旦允许，后续更高角色必然允许。
    first_allowed = allowed.index(True)
    assert all(allowed[first_allowed:])


def test_viewer_only_reads():
    assert set(allowed_actions(WorkspaceRole.VIEWER)) == {action.value for action in READ_ACTIONS}
    assert all(action.value.endswith(".read") for action in READ_ACTIONS)


def test_owner_can_never_be_removed():
    for actor in ROLES:
        assert not can_remove_member(actor, WorkspaceRole.OWNER)
    assert can_remove_member(WorkspaceRole.ADMIN, WorkspaceRole.EDITOR)
    assert can_remove_member(WorkspaceRole.OWNER, WorkspaceRole.ADMIN)
    assert not can_remove_member(WorkspaceRole.EDITOR, WorkspaceRole.VIEWER)


def test_owner_cannot_leave():
    assert not can_leave(WorkspaceRole.OWNER)
    assert all(can_leave(role) for role in ROLES if role != WorkspaceRole.OWNER)


def test_owner_is_not_grantable():
    assert WorkspaceRole.OWNER not in grantable_roles()


def test_unknown_role_string_is_rejected():
    with pytest.raises(ValueError):
        permits("SUPERUSER", PermissionAction.FORM_READ)
