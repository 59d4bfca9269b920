from collections.abc import Callable, Generator

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from formdesk_api.core.config import get_settings
from formdesk_api.db.session import Database
from formdesk_api.models.enums import WorkspaceRole
from formdesk_api.models.user import User
from formdesk_api.models.workspace import Workspace
from formdesk_api.services.local_auth import hash_password
from formdesk_api.services.membership import add_member
from formdesk_api.services.workspaces import create_workspace_with_owner

TEST_JWT_SECRET = "unit-test-secret"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch) -> Generator[None, None, None]:
    monkeypatch.setenv("FD_AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("FD_AUTH_JWT_ALGORITHMS", "HS256")
    # 测试中降低哈希迭代次数以缩短耗时。
    monkeypatch.setenv("FD_AUTH_PASSWORD_HASH_ITERATIONS", "1000")
    monkeypatch.delenv("FD_REDIS_URL", raising=False)
    monkeypatch.delenv("FD_CLOUDINARY_CLOUD_NAME", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def database() -> Generator[Database, None, None]:
    db = Database(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.create_all()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture
def db_session(database: Database) -> Generator[Session, None, None]:
    db = database.session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(email: str, *, name: str | None = None, password: str = "secret1") -> User:
        user = User(email=email, name=name or email.split("@")[0], password_hash=hash_password(password))
        db_session.add(user)
        db_session.flush()
        return user

    return _make_user


@pytest.fixture
def make_workspace(db_session: Session) -> Callable[..., Workspace]:
    def _make_workspace(owner: User, *, name: str = "team", members: dict[User, WorkspaceRole] | None = None):
        workspace = create_workspace_with_owner(db_session, owner=owner, name=name)
        for member, role in (members or {}).items():
            add_member(db_session, workspace_id=workspace.id, user_id=member.id, role=role)
        return workspace

    return _make_workspace
