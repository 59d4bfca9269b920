"""认证解析与令牌校验工具。"""

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
from threading import Lock
from typing import Any
from uuid import UUID

import jwt
from jwt import InvalidTokenError
from redis import Redis
from redis.exceptions import RedisError

from formdesk_api.core.config import Settings, get_settings
from formdesk_api.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedPrincipal:
    """统一认证主体对象。"""

    # 本地用户 ID（sub）。
    user_id: UUID
    # 令牌内携带的邮箱。
    email: str | None
    # 原始声明集，便于下游扩展。
    claims: dict[str, Any]


class TokenRevocationStore:
    """令牌黑名单。

    配置了 Redis 时写入 Redis（多实例共享），否则退化为进程内字典。
    Redis 调用失败时同样回退到进程内字典，保证登出语义尽量可用。
    """

    def __init__(self, *, redis_client: Redis | None = None, key_prefix: str = "auth:blacklist:") -> None:
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._local: dict[str, int] = {}
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenRevocationStore":
        redis_client = None
        if settings.redis_url:
            redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
        return cls(redis_client=redis_client, key_prefix=settings.auth_token_blacklist_prefix)

    def _key(self, jti: str) -> str:
        return f"{self._key_prefix}{jti}"

    def _cleanup_local(self, now_ts: int) -> None:
        expired = [key for key, expires_at in self._local.items() if expires_at <= now_ts]
        for key in expired:
            self._local.pop(key, None)

    def revoke(self, jti: str, exp_ts: int) -> None:
        """将 jti 拉黑到令牌过期时间。"""
        now_ts = int(datetime.now(timezone.utc).timestamp())
        ttl = max(1, exp_ts - now_ts)
        if self._redis is not None:
            try:
                self._redis.setex(self._key(jti), ttl, "1")
                return
            except RedisError:
                logger.warning("redis unavailable, falling back to local token blacklist")

        with self._lock:
            self._cleanup_local(now_ts)
            self._local[jti] = exp_ts

    def is_revoked(self, jti: str) -> bool:
        if self._redis is not None:
            try:
                return bool(self._redis.exists(self._key(jti)))
            except RedisError:
                logger.warning("redis unavailable, checking local token blacklist")

        now_ts = int(datetime.now(timezone.utc).timestamp())
        with self._lock:
            self._cleanup_local(now_ts)
            expires_at = self._local.get(jti)
            return expires_at is not None and expires_at > now_ts


def _unauthorized(message: str = "未登录或登录状态已失效。") -> UnauthenticatedError:
    return UnauthenticatedError(message)


def decode_access_token(token: str) -> dict[str, Any]:
    """校验签名与过期时间并返回声明集。"""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            key=settings.auth_jwt_secret,
            algorithms=settings.auth_algorithms,
            leeway=settings.auth_jwt_leeway_seconds,
            options={"require": ["sub", "exp"]},
        )
    except InvalidTokenError as exc:
        raise _unauthorized("访问令牌无效或已过期。") from exc


def _extract_bearer_token(authorization: str | None) -> str:
    """从 Authorization 头中提取 Bearer token，兼容重复头被逗号拼接的场景。"""
    if not authorization:
        raise _unauthorized("缺少 Authorization 请求头。")
    tokens = [token for token in re.findall(r"Bearer\s+([^,\s]+)", authorization, flags=re.IGNORECASE) if token]
    if not tokens:
        raise _unauthorized("Authorization 请求头格式错误。")
    return tokens[-1]


def parse_authorization_header(
    authorization: str | None,
    *,
    revocation_store: TokenRevocationStore | None = None,
) -> AuthenticatedPrincipal:
    """解析认证头并返回认证主体。"""
    token = _extract_bearer_token(authorization)
    claims = decode_access_token(token)

    jti = claims.get("jti")
    if revocation_store is not None and isinstance(jti, str) and jti and revocation_store.is_revoked(jti):
        raise _unauthorized("访问令牌已注销。")

    try:
        user_id = UUID(str(claims.get("sub") or ""))
    except ValueError as exc:
        raise _unauthorized("访问令牌缺少用户标识。") from exc

    email = claims.get("email")
    return AuthenticatedPrincipal(
        user_id=user_id,
        email=email if isinstance(email, str) else None,
        claims=claims,
    )
