"""路由模块导出集合。"""

from . import analytics, auth, forms, health, media, users, workspaces

__all__ = [
    "analytics",
    "auth",
    "forms",
    "health",
    "media",
    "users",
    "workspaces",
]
