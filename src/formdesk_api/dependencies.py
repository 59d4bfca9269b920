"""请求上下文依赖。

职责:
1. 解析并校验访问令牌（含注销黑名单）。
2. 将认证主体映射为本地 User。
3. 提供应用级共享对象（令牌黑名单、媒体存储客户端）。
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from formdesk_api.core.security import AuthenticatedPrincipal, TokenRevocationStore, parse_authorization_header
from formdesk_api.db.session import get_db
from formdesk_api.exceptions import UnauthenticatedError
from formdesk_api.models.user import User
from formdesk_api.services.media import CloudinaryClient

bearer_scheme = HTTPBearer(auto_error=False)


def get_revocation_store(request: Request) -> TokenRevocationStore:
    """返回应用入口挂载的令牌黑名单。"""
    return request.app.state.revocation_store


def get_media_client(request: Request) -> CloudinaryClient:
    """返回应用入口挂载的媒体存储客户端。"""
    return request.app.state.media_client


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    revocation_store: TokenRevocationStore = Depends(get_revocation_store),
) -> AuthenticatedPrincipal:
    """提取并解析当前请求认证主体。"""
    authorization = None
    if credentials is not None and credentials.credentials:
        authorization = f"{credentials.scheme} {credentials.credentials}"
    return parse_authorization_header(authorization, revocation_store=revocation_store)


def get_current_user(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User:
    """令牌有效但用户已被删除时同样视为未认证。"""
    user = db.get(User, principal.user_id)
    if user is None:
        raise UnauthenticatedError("用户不存在或已被删除。")
    return user
