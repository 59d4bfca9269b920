"""数据库基础模型导出。

仅提供 Base 定义；导入 models 以保证全部表注册到元数据。
"""

import formdesk_api.models  # noqa: F401
from formdesk_api.models.base import Base

__all__ = ["Base"]
