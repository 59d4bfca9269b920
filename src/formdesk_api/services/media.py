"""远程媒体存储（Cloudinary）签名与删除。

上传由客户端直传：服务端只生成带签名的表单字段，不经手文件内容。
删除走 Admin API（Basic 认证），按标签批量删除或按 public_id 精确删除。
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import logging
from typing import Any
from uuid import UUID, uuid4

import httpx

from formdesk_api.core.config import Settings
from formdesk_api.exceptions import InternalError, MediaStorageError
from formdesk_api.models.enums import MediaContextType, MediaFileType

logger = logging.getLogger(__name__)


def generate_signature(params: dict[str, Any], api_secret: str) -> str:
    """按键名排序拼接 `k=v&...` 后追加密钥，返回 SHA-1 十六进制摘要。"""
    signature_string = "&".join(
        f"{key}={params[key]}" for key in sorted(params) if params[key] is not None and key != "file"
    )
    return hashlib.sha1(f"{signature_string}{api_secret}".encode("utf-8")).hexdigest()


def resource_type_for(file_type: MediaFileType) -> str:
    """PDF 作为原始文件存储，其余按图片处理。"""
    return "raw" if MediaFileType(file_type) == MediaFileType.PDF else "image"


def context_tag(context_type: MediaContextType, context_id: UUID | str) -> str:
    """业务对象标签，例如 `WORKSPACE_<id>`。"""
    return f"{MediaContextType(context_type).value}_{context_id}"


@dataclass(frozen=True)
class SignedUpload:
    """客户端直传所需的上传地址与表单字段。"""

    upload_url: str
    form_data: dict[str, str]
    file_id: str


class CloudinaryClient:
    """Cloudinary 接口客户端。"""

    def __init__(
        self,
        *,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> "CloudinaryClient":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            base_url=settings.cloudinary_api_base_url,
            timeout_seconds=settings.media_request_timeout_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._cloud_name and self._api_key and self._api_secret)

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise InternalError("远程媒体存储未配置。", code="MEDIA_NOT_CONFIGURED")

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=f"{self._base_url}/{self._cloud_name}",
            auth=(self._api_key, self._api_secret),
            timeout=self._timeout,
            transport=self._transport,
        )

    def build_signed_upload(
        self,
        *,
        file_type: MediaFileType,
        context_type: MediaContextType,
        context_id: UUID | str,
        timestamp: int | None = None,
    ) -> SignedUpload:
        """生成签名上传参数，public_id 为新的随机 UUID。"""
        self._ensure_configured()
        file_type = MediaFileType(file_type)
        context_type = MediaContextType(context_type)
        resource_type = resource_type_for(file_type)
        public_id = str(uuid4())
        tags = ",".join([context_type.value, context_tag(context_type, context_id), resource_type])
        if timestamp is None:
            timestamp = int(datetime.now(timezone.utc).timestamp())

        signature = generate_signature(
            {"timestamp": timestamp, "public_id": public_id, "tags": tags},
            self._api_secret,
        )
        return SignedUpload(
            upload_url=f"{self._base_url}/{self._cloud_name}/{resource_type}/upload",
            form_data={
                "file": "",
                "api_key": self._api_key,
                "timestamp": str(timestamp),
                "signature": signature,
                "public_id": public_id,
                "tags": tags,
            },
            file_id=public_id,
        )

    def _delete(self, path: str, *, params: dict[str, Any], error_code: str) -> dict[str, Any]:
        self._ensure_configured()
        try:
            with self._client() as client:
                response = client.delete(path, params=params)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("media delete failed path=%s error=%s", path, exc)
            raise MediaStorageError("远程媒体删除失败。", code=error_code) from exc

        try:
            return response.json()
        except ValueError:
            return {}

    def delete_by_tag(self, tag: str, *, resource_type: str = "image") -> dict[str, Any]:
        """删除带指定标签的全部资源。"""
        logger.info("deleting media by tag tag=%s resource_type=%s", tag, resource_type)
        return self._delete(
            f"/resources/{resource_type}/tags/{tag}",
            params={"resource_type": resource_type},
            error_code="MEDIA_DELETE_FAILED",
        )

    def delete_by_public_id(self, public_id: str, *, resource_type: str = "image") -> dict[str, Any]:
        """按 public_id 删除单个资源。"""
        logger.info("deleting media public_id=%s resource_type=%s", public_id, resource_type)
        return self._delete(
            f"/resources/{resource_type}/upload",
            params={"public_ids[]": public_id},
            error_code="MEDIA_DELETE_FAILED",
        )

    def purge_context(self, context_type: MediaContextType, context_id: UUID | str) -> dict[str, Any]:
        """删除业务对象关联的全部图片与文件，按资源类型返回远程结果。"""
        tag = context_tag(context_type, context_id)
        return {resource_type: self.delete_by_tag(tag, resource_type=resource_type) for resource_type in ("image", "raw")}
