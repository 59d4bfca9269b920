import hashlib
import logging

import httpx
import pytest
from sqlalchemy import event, select
from sqlalchemy.dialects import postgresql

from formdesk_api.exceptions import ConflictError, ForbiddenError, InternalError, MediaStorageError
from formdesk_api.models.enums import MediaContextType, MediaFileType, WorkspaceRole
from formdesk_api.models.workspace import Workspace, WorkspaceAsset
from formdesk_api.services.assets import add_asset, delete_asset, list_assets, purge_workspace_media
from formdesk_api.services.media import CloudinaryClient, generate_signature
from formdesk_api.services.workspaces import delete_workspace


class RecordingTransport(httpx.MockTransport):
    """记录请求并按状态码返回固定响应的传输层。"""

    def __init__(self, status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status_code, json={"deleted": {"x": "deleted"}})

        super().__init__(handler)


def _client(transport: httpx.BaseTransport | None = None, **overrides) -> CloudinaryClient:
    options = {
        "cloud_name": "demo",
        "api_key": "key-123",
        "api_secret": "shh",
        "transport": transport,
    }
    options.update(overrides)
    return CloudinaryClient(**options)


@pytest.fixture
def team(db_session, make_user, make_workspace):
    owner = make_user("owner@example.com")
    editor = make_user("editor@example.com")
    viewer = make_user("viewer@example.com")
    workspace = make_workspace(owner, members={editor: WorkspaceRole.EDITOR, viewer: WorkspaceRole.VIEWER})
    return {"owner": owner, "editor": editor, "viewer": viewer, "workspace": workspace}


def _add(db_session, team, index: int = 0, actor: str = "editor"):
    return add_asset(
        db_session,
        workspace_id=team["workspace"].id,
        actor=team[actor],
        image_url=f"https://res.example.com/{index}.png",
        image_public_id=f"asset-{index}",
    )


def test_generate_signature_sorts_and_skips_file_and_none():
    params = {"timestamp": 1700000000, "public_id": "abc", "tags": "WORKSPACE,img", "file": "data", "eager": None}
    expected = hashlib.sha1(b"public_id=abc&tags=WORKSPACE,img&timestamp=1700000000shh").hexdigest()
    assert generate_signature(params, "shh") == expected


def test_signed_upload_for_pdf_uses_raw_resource():
    upload = _client().build_signed_upload(
        file_type=MediaFileType.PDF,
        context_type=MediaContextType.FORM,
        context_id="f-1",
        timestamp=1700000000,
    )

    assert upload.upload_url == "https://api.cloudinary.com/v1_1/demo/raw/upload"
    form_data = upload.form_data
    assert form_data["tags"] == "FORM,FORM_f-1,raw"
    assert form_data["public_id"] == upload.file_id
    assert form_data["api_key"] == "key-123"
    assert form_data["timestamp"] == "1700000000"
    assert form_data["signature"] == generate_signature(
        {"timestamp": 1700000000, "public_id": upload.file_id, "tags": "FORM,FORM_f-1,raw"},
        "shh",
    )


def test_signed_upload_public_ids_are_unique():
    client = _client()
    first = client.build_signed_upload(file_type=MediaFileType.IMAGE, context_type=MediaContextType.WORKSPACE, context_id="w")
    second = client.build_signed_upload(file_type=MediaFileType.IMAGE, context_type=MediaContextType.WORKSPACE, context_id="w")
    assert first.file_id != second.file_id
    assert first.upload_url.endswith("/demo/image/upload")


def test_unconfigured_client_raises_internal_error():
    with pytest.raises(InternalError) as exc_info:
        _client(api_secret=None).build_signed_upload(
            file_type=MediaFileType.IMAGE,
            context_type=MediaContextType.WORKSPACE,
            context_id="w",
        )
    assert exc_info.value.code == "MEDIA_NOT_CONFIGURED"
    assert exc_info.value.status_code == 500


def test_delete_by_tag_uses_basic_auth():
    transport = RecordingTransport()
    _client(transport).delete_by_tag("WORKSPACE_w1", resource_type="image")

    request = transport.requests[0]
    assert request.method == "DELETE"
    assert request.url.path == "/v1_1/demo/resources/image/tags/WORKSPACE_w1"
    assert request.url.params["resource_type"] == "image"
    assert request.headers["Authorization"].startswith("Basic ")


def test_remote_failure_raises_media_storage_error():
    with pytest.raises(MediaStorageError) as exc_info:
        _client(RecordingTransport(status_code=502)).delete_by_public_id("asset-1")
    assert exc_info.value.code == "MEDIA_DELETE_FAILED"


def test_asset_limit(db_session, team):
    for index in range(10):
        _add(db_session, team, index)

    with pytest.raises(ConflictError) as exc_info:
        _add(db_session, team, 10)

    assert exc_info.value.code == "ASSET_LIMIT_REACHED"
    assert len(list_assets(db_session, workspace_id=team["workspace"].id, actor=team["viewer"])) == 10


def test_viewer_cannot_add_asset(db_session, team):
    with pytest.raises(ForbiddenError):
        _add(db_session, team, actor="viewer")


def test_delete_asset_removes_remote_then_row(db_session, team):
    asset = _add(db_session, team)
    transport = RecordingTransport()

    delete_asset(
        db_session,
        workspace_id=team["workspace"].id,
        asset_id=asset.id,
        actor=team["editor"],
        media_client=_client(transport),
    )

    assert transport.requests[0].url.params["public_ids[]"] == "asset-0"
    assert db_session.get(WorkspaceAsset, asset.id) is None


def test_delete_asset_keeps_row_when_remote_fails(db_session, team):
    asset = _add(db_session, team)
    with pytest.raises(MediaStorageError):
        delete_asset(
            db_session,
            workspace_id=team["workspace"].id,
            asset_id=asset.id,
            actor=team["editor"],
            media_client=_client(RecordingTransport(status_code=500)),
        )
    assert db_session.get(WorkspaceAsset, asset.id) is not None


def test_delete_workspace_purges_tagged_media(db_session, team):
    workspace_id = team["workspace"].id
    _add(db_session, team)
    transport = RecordingTransport()

    delete_workspace(db_session, workspace_id=workspace_id, actor=team["owner"], media_client=_client(transport))

    paths = sorted(request.url.path for request in transport.requests)
    assert paths == [
        f"/v1_1/demo/resources/image/tags/WORKSPACE_{workspace_id}",
        f"/v1_1/demo/resources/raw/tags/WORKSPACE_{workspace_id}",
    ]
    assert db_session.get(Workspace, workspace_id) is None
    assert db_session.execute(select(WorkspaceAsset).where(WorkspaceAsset.workspace_id == workspace_id)).first() is None


def test_add_asset_locks_workspace_row_before_counting(db_session, team):
    statements: list[str] = []

    def record(orm_execute_state):
        statements.append(str(orm_execute_state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db_session, "do_orm_execute", record)
    try:
        _add(db_session, team)
    finally:
        event.remove(db_session, "do_orm_execute", record)

    lock_index = next(i for i, sql in enumerate(statements) if "FROM workspaces" in sql and "FOR UPDATE" in sql)
    count_index = next(i for i, sql in enumerate(statements) if "count(" in sql and "workspace_assets" in sql)
    assert lock_index < count_index


def test_purge_workspace_media_removes_asset_rows(db_session, team):
    workspace_id = team["workspace"].id
    _add(db_session, team, 0)
    _add(db_session, team, 1)
    transport = RecordingTransport()

    purge_workspace_media(db_session, workspace_id=workspace_id, actor=team["editor"], media_client=_client(transport))

    assert len(transport.requests) == 2
    assert list_assets(db_session, workspace_id=workspace_id, actor=team["viewer"]) == []


def test_purge_workspace_media_requires_asset_delete(db_session, team):
    _add(db_session, team)
    transport = RecordingTransport()
    with pytest.raises(ForbiddenError):
        purge_workspace_media(
            db_session, workspace_id=team["workspace"].id, actor=team["viewer"], media_client=_client(transport)
        )
    assert transport.requests == []


def test_purge_workspace_media_keeps_rows_when_remote_fails(db_session, team):
    _add(db_session, team)
    with pytest.raises(MediaStorageError):
        purge_workspace_media(
            db_session,
            workspace_id=team["workspace"].id,
            actor=team["editor"],
            media_client=_client(RecordingTransport(status_code=500)),
        )
    assert len(list_assets(db_session, workspace_id=team["workspace"].id, actor=team["viewer"])) == 1


def test_delete_workspace_warns_when_media_unconfigured(db_session, team, caplog):
    _add(db_session, team)

    with caplog.at_level(logging.WARNING, logger="formdesk_api.services.workspaces"):
        delete_workspace(
            db_session,
            workspace_id=team["workspace"].id,
            actor=team["owner"],
            media_client=_client(api_secret=None),
        )

    assert "remote media not purged" in caplog.text
    assert db_session.get(Workspace, team["workspace"].id) is None
