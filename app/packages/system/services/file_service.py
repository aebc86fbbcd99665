"""文件服务：在扁平对象存储之上组合出目录列表、上传、删除与文件夹生命周期。

所有入参路径先经过规范化（非法路径在任何网络调用前被拒绝），
再经 ``StorageScope`` 编码加前缀后交给存储后端；返回给调用方的一律是解码后的逻辑路径。
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Tuple

from app.packages.system.core.config import Settings
from app.packages.system.core.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_LIST_LIMIT,
    FOLDER_MARKER_NAME,
    SIGNED_URL_DEFAULT_EXPIRES,
    SIGNED_URL_MAX_EXPIRES,
    SIGNED_URL_MIN_EXPIRES,
)
from app.packages.system.core.exceptions import AppException, PartialDeletionError
from app.packages.system.core.logger import logger
from app.packages.system.services.batch_remover import remove_all
from app.packages.system.services.folder_walker import StoredFile, list_all_files, walk_files
from app.packages.system.services.storage_backends import (
    ListEntry,
    StorageBackend,
    build_backend,
    is_folder_entry,
)
from app.packages.system.services.storage_scope import StorageOptions, StorageScope
from app.packages.system.utils.key_codec import decode_segment, to_storage_key
from app.packages.system.utils.path_utils import build_object_path, normalize_storage_path

# (文件名, 内容, content-type)
UploadMaterial = Tuple[str, bytes, Optional[str]]


def clamp_expires_in(value: Optional[int]) -> int:
    seconds = value or SIGNED_URL_DEFAULT_EXPIRES
    return min(max(seconds, SIGNED_URL_MIN_EXPIRES), SIGNED_URL_MAX_EXPIRES)


class FileService:
    def __init__(self, backend: StorageBackend, options: Optional[StorageOptions] = None) -> None:
        self.backend = backend
        self.options = options or StorageOptions()
        self.scope = StorageScope(self.options.prefix)

    # ------------------------------------------
    # 查询
    # ------------------------------------------

    def _item(self, directory: str, entry: ListEntry) -> dict[str, Any]:
        name = decode_segment(entry.name)
        return {
            "name": name,
            "path": build_object_path(directory, name),
            "isFolder": is_folder_entry(entry),
            "size": entry.size,
            "mimeType": entry.mime_type,
            "updatedAt": entry.updated_at,
            "createdAt": entry.created_at,
            "lastAccessedAt": entry.last_accessed_at,
        }

    def list_directory(self, path: Optional[str] = None, *, limit: Optional[int] = None, offset: int = 0) -> dict:
        directory = normalize_storage_path(path)
        limit = min(max(limit or DEFAULT_LIST_LIMIT, 1), self.options.page_limit)
        offset = max(offset or 0, 0)
        entries = self.backend.list(self.scope.scope(directory), limit=limit, offset=offset)
        items = [self._item(directory, e) for e in entries if e.name != FOLDER_MARKER_NAME]
        return {"path": directory, "items": items}

    def list_folders(self, path: Optional[str] = None) -> dict:
        directory = normalize_storage_path(path)
        entries = self.backend.list(self.scope.scope(directory), limit=self.options.page_limit, offset=0)
        folders = []
        for entry in entries:
            if not is_folder_entry(entry):
                continue
            name = decode_segment(entry.name)
            folders.append({"name": name, "path": build_object_path(directory, name), "updatedAt": entry.updated_at})
        return {"path": directory, "folders": folders}

    def create_signed_url(self, path: Optional[str], expires_in: Optional[int] = None) -> dict:
        object_path = normalize_storage_path(path, required=True)
        seconds = clamp_expires_in(expires_in)
        url = self.backend.create_signed_url(self.scope.scope(object_path), seconds)
        return {"url": url, "expiresIn": seconds}

    def list_all_files(self, path: Optional[str]) -> list[str]:
        return list_all_files(self.backend, self.scope, normalize_storage_path(path), page_limit=self.options.page_limit)

    # ------------------------------------------
    # 变更
    # ------------------------------------------

    def upload_files(self, path: Optional[str], files: Sequence[UploadMaterial], *, upsert: bool = False) -> dict:
        directory = normalize_storage_path(path)
        if not files:
            raise AppException("请上传文件")
        # 先校验全部文件名，避免上传到一半才发现非法路径
        targets = [(build_object_path(directory, filename), content, content_type) for filename, content, content_type in files]

        uploaded = []
        for object_path, content, content_type in targets:
            stored = self.backend.upload(
                self.scope.scope(object_path),
                content,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                upsert=upsert,
            )
            logger.info("files.upload path=%s size=%s upsert=%s", object_path, len(content), upsert)
            uploaded.append({"path": object_path, "key": self.scope.relative(stored)})
        return {"uploaded": uploaded}

    def _remove_or_raise(self, files: Sequence[StoredFile]) -> list[str]:
        """按存储键删除，返回已删除的逻辑路径；中途失败时抛出 ``PartialDeletionError``。"""
        keys = [f.key for f in files]
        result = remove_all(self.backend, self.scope, keys, chunk_size=self.options.chunk_size)
        removed = set(result.removed)
        deleted = [f.path for f in files if f.key in removed]
        if not result.ok:
            remaining = [f.path for f in files if f.key not in removed]
            raise PartialDeletionError(deleted, remaining, result.error)
        return deleted

    def delete_files(self, paths: Iterable[str]) -> dict:
        safe_paths = [normalize_storage_path(p, required=True) for p in paths]
        if not safe_paths:
            raise AppException("缺少 path")
        deleted = self._remove_or_raise([StoredFile(p, to_storage_key(p)) for p in safe_paths])
        logger.info("files.delete count=%s", len(deleted))
        return {"deleted": deleted}

    def create_folder(self, path: Optional[str]) -> dict:
        folder = normalize_storage_path(path, required=True)
        marker = build_object_path(folder, FOLDER_MARKER_NAME)
        self.backend.upload(self.scope.scope(marker), b"", content_type=DEFAULT_CONTENT_TYPE, upsert=True)
        logger.info("folders.create path=%s", folder)
        return {"created": folder}

    def delete_folder(self, path: Optional[str]) -> dict:
        folder = normalize_storage_path(path, required=True)
        files = walk_files(self.backend, self.scope, folder, page_limit=self.options.page_limit)
        if not files:
            logger.info("folders.delete path=%s empty", folder)
            return {"deleted": [], "note": "folder empty"}
        deleted = self._remove_or_raise(files)
        logger.info("folders.delete path=%s removed=%s", folder, len(deleted))
        return {"deleted": deleted}


def build_file_service(settings: Settings) -> FileService:
    backend = build_backend(
        type=settings.storage_type,
        bucket_name=settings.storage_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_service_role_key,
        local_root_path=settings.local_storage_root,
    )
    logger.info("file_service backend=%s bucket=%s prefix=%r", backend.name, settings.storage_bucket, settings.storage_prefix)
    return FileService(backend, settings.storage_options)
