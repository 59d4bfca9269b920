"""FastAPI 应用入口点。"""

from fastapi import FastAPI

from formdesk_api.api.router import api_router
from formdesk_api.core.config import Settings, get_settings
from formdesk_api.core.logging import setup_logging
from formdesk_api.core.security import TokenRevocationStore
from formdesk_api.db.session import Database
from formdesk_api.exceptions import register_exception_handlers
from formdesk_api.middlewares import register_middlewares
from formdesk_api.services.media import CloudinaryClient


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    media_client: CloudinaryClient | None = None,
    revocation_store: TokenRevocationStore | None = None,
) -> FastAPI:
    """创建并配置 FastAPI 应用实例。

    数据库、令牌黑名单与媒体客户端均在此显式构造并挂载到 `app.state`，
    测试可直接注入替身实现。
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        description=(
            "多租户表单构建服务接口。\n\n"
            "成功响应统一为：`{request_id, status, message, data}`；"
            "错误响应统一为：`{request_id, status, message, code, details}`。\n"
            "通过 Bearer 访问令牌进行认证，权限按工作空间角色判定。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "auth", "description": "注册、登录、登出与登录态校验。"},
            {"name": "users", "description": "当前用户收到的工作空间邀请。"},
            {"name": "workspaces", "description": "工作空间生命周期、成员、邀请与素材管理。"},
            {"name": "forms", "description": "工作空间内的表单与页面管理。"},
            {"name": "public-forms", "description": "已发布表单的公开读取、提交与访问统计。"},
            {"name": "analytics", "description": "表单访问与转化统计。"},
            {"name": "media", "description": "远程媒体存储直传签名与清理。"},
        ],
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.revocation_store = revocation_store or TokenRevocationStore.from_settings(settings)
    app.state.media_client = media_client or CloudinaryClient.from_settings(settings)

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
