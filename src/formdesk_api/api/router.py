"""顶层路由注册。"""

from fastapi import APIRouter

from . import analytics, auth, forms, health, media, users, workspaces

api_router = APIRouter()

# 固定注册顺序，便于在线接口文档展示和问题定位。
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(workspaces.router)
api_router.include_router(forms.workspace_router)
api_router.include_router(forms.public_router)
api_router.include_router(analytics.router)
api_router.include_router(media.router)
