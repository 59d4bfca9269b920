"""服务层能力导出集合。"""

from formdesk_api.services.analytics import detect_device_type, get_form_analytics, track_form_visit
from formdesk_api.services.assets import add_asset, delete_asset, list_assets, purge_workspace_media
from formdesk_api.services.authorization import Decision, DenyReason, authorize, require, require_form, require_form_by_id
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
from formdesk_api.services.invitations import (
    accept_invitation,
    create_invitation,
    list_pending_invitations,
    reject_invitation,
)
from formdesk_api.services.local_auth import hash_password, issue_access_token, normalize_email, verify_password
from formdesk_api.services.media import CloudinaryClient, generate_signature
from formdesk_api.services.membership import add_member, get_role, list_members, remove_member
from formdesk_api.services.roles import PermissionAction, allowed_actions, can_leave, can_remove_member, permits
from formdesk_api.services.workspaces import (
    create_workspace_with_owner,
    delete_workspace,
    get_workspace_detail,
    leave_workspace,
    list_user_workspaces,
    remove_workspace_member,
    rename_workspace,
)

__all__ = [
    "PermissionAction",
    "permits",
    "allowed_actions",
    "can_leave",
    "can_remove_member",
    "get_role",
    "add_member",
    "remove_member",
    "list_members",
    "Decision",
    "DenyReason",
    "authorize",
    "require",
    "require_form",
    "require_form_by_id",
    "create_invitation",
    "accept_invitation",
    "reject_invitation",
    "list_pending_invitations",
    "create_workspace_with_owner",
    "rename_workspace",
    "delete_workspace",
    "leave_workspace",
    "remove_workspace_member",
    "list_user_workspaces",
    "get_workspace_detail",
    "create_form",
    "delete_form",
    "toggle_form_status",
    "get_form_page",
    "update_page_content",
    "create_next_page",
    "list_submissions",
    "get_published_form",
    "submit_form_response",
    "detect_device_type",
    "track_form_visit",
    "get_form_analytics",
    "list_assets",
    "add_asset",
    "delete_asset",
    "purge_workspace_media",
    "CloudinaryClient",
    "generate_signature",
    "normalize_email",
    "hash_password",
    "verify_password",
    "issue_access_token",
]
