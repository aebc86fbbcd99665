"""测试夹具：提供内存对象存储、文件服务与客户端的共享配置。"""

from typing import Generator, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.packages.system.core.constants import DEFAULT_CONTENT_TYPE
from app.packages.system.core.dependencies import get_file_service, get_permission_checker
from app.packages.system.core.exceptions import ObjectExistsError, StorageUnavailableError
from app.packages.system.services.file_service import FileService
from app.packages.system.services.storage_backends import ListEntry, StorageBackend
from app.packages.system.services.storage_scope import StorageOptions


class MemoryBackend(StorageBackend):
    """内存中的扁平对象存储，列举语义与 Supabase Storage 一致，并支持注入故障。"""

    name = "memory"

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.list_calls: list[tuple[str, int, int]] = []
        self.remove_calls: list[list[str]] = []
        self.fail_list_prefixes: set[str] = set()
        # 第 N 次 remove 调用失败（从 1 开始计数）
        self.fail_remove_at: Optional[int] = None

    def put(self, key: str, data: bytes = b"x", content_type: str = "text/plain") -> None:
        self.objects[key] = (data, content_type)

    def list(self, prefix, *, limit, offset=0, sort_by="name", order="asc"):
        self.list_calls.append((prefix, limit, offset))
        if prefix in self.fail_list_prefixes:
            raise StorageUnavailableError(f"list failed: {prefix}")
        base = f"{prefix}/" if prefix else ""
        folders: set[str] = set()
        files: dict[str, str] = {}
        for key in self.objects:
            if not key.startswith(base):
                continue
            head, sep, _ = key[len(base):].partition("/")
            if sep:
                folders.add(head)
            else:
                files[head] = key
        entries = [ListEntry(name=name) for name in folders]
        for name, key in files.items():
            data, content_type = self.objects[key]
            entries.append(
                ListEntry(
                    name=name,
                    id=key,
                    metadata={"size": len(data), "mimetype": content_type},
                    updated_at="2024-01-01T00:00:00+00:00",
                    created_at="2024-01-01T00:00:00+00:00",
                )
            )
        entries.sort(key=lambda e: e.name, reverse=(order == "desc"))
        return entries[offset : offset + limit]

    def upload(self, key, data, *, content_type=DEFAULT_CONTENT_TYPE, upsert=False):
        if key in self.objects and not upsert:
            raise ObjectExistsError(key)
        self.objects[key] = (data, content_type)
        return key

    def remove(self, keys: Sequence[str]) -> None:
        self.remove_calls.append(list(keys))
        if self.fail_remove_at == len(self.remove_calls):
            raise StorageUnavailableError("remove failed")
        for key in keys:
            self.objects.pop(key, None)

    def create_signed_url(self, key, expires_in):
        return f"https://storage.test/sign/{key}?expires={expires_in}"


def allow_all(request, code: str) -> bool:
    return True


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def file_service(backend: MemoryBackend) -> FileService:
    return FileService(backend, StorageOptions())


@pytest.fixture()
def client(file_service: FileService) -> Generator[TestClient, None, None]:
    """构建 FastAPI TestClient，注入基于内存存储的文件服务，并默认放行权限校验。"""
    app.dependency_overrides[get_file_service] = lambda: file_service
    app.dependency_overrides[get_permission_checker] = lambda: allow_all

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
