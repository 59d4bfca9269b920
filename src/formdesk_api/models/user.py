"""用户身份模型。"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from formdesk_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """注册用户。注册后仅允许修改口令，本系统范围内不删除。"""

    __tablename__ = "users"

    # 登录邮箱，全局唯一，入库前统一小写。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # 展示名。
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 口令哈希，不存明文。
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
