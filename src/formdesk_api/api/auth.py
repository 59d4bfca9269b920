"""注册、登录与登出接口。"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formdesk_api.core.security import AuthenticatedPrincipal, TokenRevocationStore
from formdesk_api.db.session import get_db
from formdesk_api.dependencies import get_current_principal, get_current_user, get_revocation_store
from formdesk_api.exceptions import ConflictError, UnauthenticatedError
from formdesk_api.models.user import User
from formdesk_api.schemas.auth import AuthLogoutData, AuthSignInData, AuthSignInRequest, AuthSignUpData, AuthSignUpRequest
from formdesk_api.schemas.common import ErrorResponse, SuccessResponse
from formdesk_api.schemas.responses import AuthMeData
from formdesk_api.services.local_auth import hash_password, issue_access_token, normalize_email, verify_password
from formdesk_api.services.workspaces import create_workspace_with_owner
from formdesk_api.utils.response import success

router = APIRouter(prefix="/auth", tags=["auth"])


def _invalid_credentials() -> UnauthenticatedError:
    return UnauthenticatedError("邮箱或密码错误。", code="INVALID_CREDENTIALS")


def _email_taken() -> ConflictError:
    return ConflictError("该邮箱已注册。", code="EMAIL_ALREADY_REGISTERED")


@router.post(
    "/sign-up",
    summary="注册账号",
    description="创建本地账号，并自动创建名为 my workspace 的默认工作空间（注册者为 OWNER）。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthSignUpData],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def sign_up(
    payload: AuthSignUpRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """注册账号并初始化默认工作空间。"""
    email = normalize_email(payload.email)
    if db.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None:
        raise _email_taken()

    user = User(email=email, name=payload.name.strip(), password_hash=hash_password(payload.password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise _email_taken() from exc

    workspace = create_workspace_with_owner(db, owner=user)
    db.commit()
    return success(request, {"user_id": user.id, "workspace_id": workspace.id}, message="注册成功。")


@router.post(
    "/sign-in",
    summary="登录",
    description="校验邮箱与密码，签发访问令牌。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthSignInData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def sign_in(
    payload: AuthSignInRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """账号不存在与密码错误统一返回 401，避免暴露账号是否存在。"""
    user = db.execute(select(User).where(User.email == normalize_email(payload.email))).scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise _invalid_credentials()

    token, _, expires_at = issue_access_token(user)
    expires_in = max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))
    return success(
        request,
        {
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at,
            "expires_in": expires_in,
            "user": {"id": user.id, "email": user.email, "name": user.name},
        },
        message="登录成功。",
    )


@router.get(
    "/me",
    summary="获取当前身份",
    description="校验登录态并返回当前用户资料。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthMeData],
    responses={401: {"model": ErrorResponse}},
)
def me(request: Request, user: User = Depends(get_current_user)):
    return success(
        request,
        {"id": user.id, "email": user.email, "name": user.name, "created_at": user.created_at},
    )


@router.post(
    "/logout",
    summary="登出",
    description="将当前访问令牌加入黑名单（优先 Redis），已登出的 token 立即失效。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthLogoutData],
    responses={401: {"model": ErrorResponse}},
)
def logout(
    request: Request,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    revocation_store: TokenRevocationStore = Depends(get_revocation_store),
):
    """登出并拉黑当前访问令牌。"""
    jti = principal.claims.get("jti")
    exp = principal.claims.get("exp")
    revoked = False
    if isinstance(jti, str) and jti and isinstance(exp, int):
        revocation_store.revoke(jti, exp)
        revoked = True

    return success(request, {"logged_out": True, "revoked": revoked}, message="已登出。")
