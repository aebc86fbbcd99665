"""本地目录存储后端（LOCAL）。"""

import pytest

from app.packages.system.core.exceptions import AppException, ObjectExistsError
from app.packages.system.services.file_service import FileService
from app.packages.system.services.storage_backends import LocalBackend, build_backend, is_folder_entry
from app.packages.system.services.storage_scope import StorageOptions


@pytest.fixture()
def local_backend(tmp_path):
    return LocalBackend(tmp_path / "root")


def test_list_reports_folders_and_files(local_backend):
    local_backend.upload("docs/a.txt", b"hello", content_type="text/plain")
    local_backend.upload("docs/sub/b.txt", b"world")

    root = local_backend.list("", limit=100)
    assert [e.name for e in root] == ["docs"]
    assert is_folder_entry(root[0])

    docs = local_backend.list("docs", limit=100)
    assert [e.name for e in docs] == ["a.txt", "sub"]
    assert not is_folder_entry(docs[0])
    assert docs[0].size == 5
    assert docs[0].mime_type == "text/plain"
    assert is_folder_entry(docs[1])

    assert local_backend.list("missing", limit=100) == []
    assert [e.name for e in local_backend.list("docs", limit=1, offset=1)] == ["sub"]


def test_upload_respects_upsert(local_backend):
    local_backend.upload("a.txt", b"1")
    with pytest.raises(ObjectExistsError):
        local_backend.upload("a.txt", b"2")
    local_backend.upload("a.txt", b"3", upsert=True)
    assert (local_backend.root / "a.txt").read_bytes() == b"3"


def test_remove_prunes_empty_directories(local_backend):
    local_backend.upload("docs/sub/b.txt", b"x")

    local_backend.remove(["docs/sub/b.txt", "docs/never-existed.txt"])

    assert local_backend.list("", limit=100) == []
    assert local_backend.root.is_dir()


def test_signed_url_is_file_uri(local_backend):
    local_backend.upload("a.txt", b"1")
    assert local_backend.create_signed_url("a.txt", 60).startswith("file://")

    with pytest.raises(AppException) as exc_info:
        local_backend.create_signed_url("missing.txt", 60)
    assert exc_info.value.status_code == 404


def test_keys_cannot_escape_root(local_backend):
    with pytest.raises(AppException) as exc_info:
        local_backend.upload("../escape.txt", b"x")
    assert exc_info.value.status_code == 400


def test_build_backend(tmp_path):
    assert isinstance(build_backend(type="local", local_root_path=tmp_path), LocalBackend)
    with pytest.raises(AppException):
        build_backend(type="LOCAL")
    with pytest.raises(AppException):
        build_backend(type="SUPABASE", bucket_name="admin")
    with pytest.raises(AppException):
        build_backend(type="FTP")


def test_folder_lifecycle_on_local_disk(local_backend):
    service = FileService(local_backend, StorageOptions(prefix="site"))

    service.create_folder("项目/空目录")
    service.upload_files("项目", [("说明.md", b"# hi", "text/markdown")])

    listing = service.list_directory("项目")
    assert [(i["name"], i["isFolder"]) for i in listing["items"]] == [("空目录", True), ("说明.md", False)]
    assert service.list_directory("项目/空目录")["items"] == []
    assert service.list_folders("项目")["folders"][0]["path"] == "项目/空目录"

    result = service.delete_folder("项目")

    assert sorted(result["deleted"]) == ["项目/空目录/.keep", "项目/说明.md"]
    assert service.list_directory("")["items"] == []
    assert not (local_backend.root / "site").exists()


def test_delete_folder_removes_unencoded_legacy_keys(local_backend):
    local_backend.upload("docs/报告.pdf", b"legacy")
    local_backend.upload("docs/a.txt", b"new")
    service = FileService(local_backend)

    result = service.delete_folder("docs")

    assert sorted(result["deleted"]) == ["docs/a.txt", "docs/报告.pdf"]
    assert local_backend.list("docs", limit=100) == []
    assert local_backend.list("", limit=100) == []
