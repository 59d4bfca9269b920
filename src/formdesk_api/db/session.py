"""数据库会话管理。

引擎与会话工厂由 `Database` 持有，并由应用入口显式构造、挂载到 `app.state`，
不在模块级维护全局连接对象。
"""

from collections.abc import Generator
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from formdesk_api.db.base import Base


class Database:
    """持有数据库引擎与会话工厂。"""

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine: Engine = create_engine(url, future=True, **engine_kwargs)
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, class_=Session)

    def session(self) -> Session:
        """创建一个新的短生命周期会话。"""
        return self.session_factory()

    def create_all(self) -> None:
        """按模型元数据建表（测试与本地开发使用，生产由迁移脚本维护）。"""
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        """释放连接池。"""
        self.engine.dispose()


def get_database(request: Request) -> Database:
    """返回应用入口挂载的数据库对象。"""
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """为每个请求提供独立数据库会话，未提交的变更在关闭时回滚。"""
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
