"""ORM 模型导出集合。"""

from formdesk_api.models.form import Form, FormAnalyticsSummary, FormPage, FormVisit, Submission
from formdesk_api.models.user import User
from formdesk_api.models.workspace import Invitation, Workspace, WorkspaceAsset, WorkspaceMember

__all__ = [
    "Form",
    "FormAnalyticsSummary",
    "FormPage",
    "FormVisit",
    "Invitation",
    "Submission",
    "User",
    "Workspace",
    "WorkspaceAsset",
    "WorkspaceMember",
]
