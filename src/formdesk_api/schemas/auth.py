"""注册、登录与登出请求结构。"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from formdesk_api.schemas.common import BaseSchema

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class AuthSignUpRequest(BaseModel):
    """注册请求。"""

    name: str = Field(min_length=1, max_length=128, description="用户名称。", examples=["Alice"])
    email: str = Field(
        min_length=5,
        max_length=256,
        pattern=EMAIL_PATTERN,
        description="登录邮箱。",
        examples=["alice@example.com"],
    )
    password: str = Field(min_length=6, max_length=128, description="登录密码。", examples=["secret1"])


class AuthSignInRequest(BaseModel):
    """登录请求。"""

    email: str = Field(
        min_length=5,
        max_length=256,
        pattern=EMAIL_PATTERN,
        description="登录邮箱。",
        examples=["alice@example.com"],
    )
    password: str = Field(min_length=6, max_length=128, description="登录密码。", examples=["secret1"])


class UserProfileData(BaseSchema):
    """用户基础资料。"""

    id: UUID = Field(description="用户 ID。")
    email: str = Field(description="登录邮箱。")
    name: str = Field(description="用户名称。")


class AuthSignUpData(BaseSchema):
    """注册结果结构。"""

    user_id: UUID = Field(description="用户 ID。")
    workspace_id: UUID = Field(description="注册时自动创建的默认工作空间 ID。")


class AuthSignInData(BaseSchema):
    """登录结果结构。"""

    access_token: str = Field(description="访问令牌。")
    token_type: str = Field(default="bearer", description="令牌类型。")
    expires_at: datetime = Field(description="令牌过期时间（UTC）。")
    expires_in: int = Field(description="距过期剩余秒数。")
    user: UserProfileData = Field(description="登录用户资料。")


class AuthLogoutData(BaseSchema):
    """登出结果结构。"""

    logged_out: bool = Field(description="是否已完成登出。")
    revoked: bool = Field(description="当前 token 是否已加入黑名单。")
