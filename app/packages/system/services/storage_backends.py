"""存储后端抽象与实现：把 Supabase / S3 / 本地目录统一为“扁平键 + 单层列举”的对象存储接口。

所有实现都只接收已编码、已加前缀的对象键；列举结果中的 ``name`` 是相对于被列举前缀的单段键名。
文件夹判定只有一处（``is_folder_entry``），各后端负责把自身的“公共前缀”信号整理成
“无 id、无 metadata”的条目。
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from app.packages.system.core.constants import (
    DEFAULT_CONTENT_TYPE,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_ERROR,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.system.core.exceptions import AppException, ObjectExistsError, StorageUnavailableError
from app.packages.system.core.logger import logger


def _norm_mime(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime or DEFAULT_CONTENT_TYPE


def _iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    return ts.astimezone(timezone.utc).isoformat()


# ------------------------------------------
# 公共数据结构
# ------------------------------------------


@dataclass(frozen=True)
class ListEntry:
    """单次列举返回的一条记录，仅在请求内存在。"""

    name: str
    id: Optional[str] = None
    metadata: Optional[dict] = None
    updated_at: Optional[str] = None
    created_at: Optional[str] = None
    last_accessed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, item: dict) -> "ListEntry":
        return cls(
            name=str(item.get("name") or ""),
            id=item.get("id"),
            metadata=item.get("metadata"),
            updated_at=item.get("updated_at"),
            created_at=item.get("created_at"),
            last_accessed_at=item.get("last_accessed_at"),
        )

    @property
    def size(self) -> Optional[int]:
        return (self.metadata or {}).get("size")

    @property
    def mime_type(self) -> Optional[str]:
        return (self.metadata or {}).get("mimetype")


def is_folder_entry(entry: ListEntry) -> bool:
    """没有对象 id 也没有内容元数据的条目是“公共前缀”伪条目，即文件夹。"""
    return entry.id is None and entry.metadata is None


class StorageBackend:
    """存储后端接口。"""

    name = "base"

    def list(
        self,
        prefix: str,
        *,
        limit: int,
        offset: int = 0,
        sort_by: str = "name",
        order: str = "asc",
    ) -> List[ListEntry]:
        raise NotImplementedError

    def upload(self, key: str, data: bytes, *, content_type: str = DEFAULT_CONTENT_TYPE, upsert: bool = False) -> str:
        raise NotImplementedError

    def remove(self, keys: Sequence[str]) -> None:
        raise NotImplementedError

    def create_signed_url(self, key: str, expires_in: int) -> str:
        raise NotImplementedError


def _sort_and_page(entries: List[ListEntry], *, limit: int, offset: int, order: str) -> List[ListEntry]:
    entries.sort(key=lambda e: e.name, reverse=(order == "desc"))
    start = max(offset, 0)
    return entries[start : start + limit]


# ------------------------------------------
# Supabase Storage 实现
# ------------------------------------------


class SupabaseBackend(StorageBackend):
    name = "supabase"

    def __init__(self, *, url: str, service_role_key: str, bucket: str) -> None:
        try:
            from supabase import create_client  # type: ignore
        except Exception as exc:
            raise AppException(
                "Supabase 功能不可用：缺少依赖 supabase，请在后端安装后重试",
                HTTP_STATUS_INTERNAL_ERROR,
            ) from exc

        self.bucket = bucket
        self._client = create_client(url, service_role_key)

    @property
    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    @staticmethod
    def _is_duplicate(exc: Exception) -> bool:
        code = str(getattr(exc, "status", "") or getattr(exc, "statusCode", ""))
        return code == "409" or str(getattr(exc, "code", "")) == "Duplicate"

    @staticmethod
    def _message(exc: Exception) -> str:
        return str(getattr(exc, "message", None) or exc)

    def list(self, prefix: str, *, limit: int, offset: int = 0, sort_by: str = "name", order: str = "asc") -> List[ListEntry]:
        options = {"limit": limit, "offset": offset, "sortBy": {"column": sort_by, "order": order}}
        try:
            data = self._bucket.list(prefix, options)
        except Exception as exc:
            raise StorageUnavailableError(self._message(exc)) from exc
        return [ListEntry.from_dict(item) for item in (data or []) if isinstance(item, dict)]

    def upload(self, key: str, data: bytes, *, content_type: str = DEFAULT_CONTENT_TYPE, upsert: bool = False) -> str:
        file_options = {"content-type": content_type, "upsert": "true" if upsert else "false"}
        try:
            resp = self._bucket.upload(key, data, file_options=file_options)
        except Exception as exc:
            if self._is_duplicate(exc):
                raise ObjectExistsError(key) from exc
            raise StorageUnavailableError(self._message(exc)) from exc
        return getattr(resp, "path", None) or key

    def remove(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            self._bucket.remove(list(keys))
        except Exception as exc:
            raise StorageUnavailableError(self._message(exc)) from exc

    def create_signed_url(self, key: str, expires_in: int) -> str:
        try:
            resp = self._bucket.create_signed_url(key, expires_in)
        except Exception as exc:
            raise StorageUnavailableError(self._message(exc)) from exc
        url = (resp or {}).get("signedURL") or (resp or {}).get("signedUrl")
        if not url:
            raise StorageUnavailableError("签名链接生成失败")
        return url


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3Backend(StorageBackend):
    name = "s3"

    def __init__(
        self,
        *,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ) -> None:
        try:
            import boto3  # type: ignore
            from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
        except Exception as exc:
            raise AppException(
                "S3 功能不可用：缺少依赖 boto3，请在后端安装后重试",
                HTTP_STATUS_INTERNAL_ERROR,
            ) from exc

        self.bucket = bucket
        self._client_error = ClientError
        self._errors = (ClientError, BotoCoreError)
        self._client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    @staticmethod
    def _key_order(entry: ListEntry) -> str:
        # S3 按完整键的字典序返回，公共前缀带结尾的 "/"
        return entry.name if entry.id is not None else f"{entry.name}/"

    def list(self, prefix: str, *, limit: int, offset: int = 0, sort_by: str = "name", order: str = "asc") -> List[ListEntry]:
        base = f"{prefix.rstrip('/')}/" if prefix else ""
        # 升序时按存储原生顺序读取，凑够 offset + limit 条即可停止翻页
        wanted = max(offset, 0) + limit if order != "desc" else None
        entries: list[ListEntry] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=base, Delimiter="/"):
                for common in page.get("CommonPrefixes", []):  # folders
                    name = common.get("Prefix", "")[len(base):].rstrip("/")
                    if name:
                        entries.append(ListEntry(name=name))
                for content in page.get("Contents", []):  # files at this level
                    key = content.get("Key") or ""
                    name = key[len(base):]
                    if not name or "/" in name:
                        continue
                    modified = _iso(content.get("LastModified"))
                    entries.append(
                        ListEntry(
                            name=name,
                            id=(content.get("ETag") or key).strip('"'),
                            metadata={"size": int(content.get("Size") or 0), "mimetype": _norm_mime(name)},
                            updated_at=modified,
                            created_at=modified,
                        )
                    )
                if wanted is not None and len(entries) >= wanted:
                    break
        except self._errors as exc:
            raise StorageUnavailableError(f"S3 列举失败: {exc}") from exc
        entries.sort(key=self._key_order, reverse=(order == "desc"))
        start = max(offset, 0)
        return entries[start : start + limit]

    def _exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except self._client_error as exc:
            code = str(exc.response.get("Error", {}).get("Code") or "")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise

    def upload(self, key: str, data: bytes, *, content_type: str = DEFAULT_CONTENT_TYPE, upsert: bool = False) -> str:
        try:
            if not upsert and self._exists(key):
                raise ObjectExistsError(key)
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except self._errors as exc:
            raise StorageUnavailableError(f"S3 上传失败: {exc}") from exc
        return key

    def remove(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            resp = self._client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )
        except self._errors as exc:
            raise StorageUnavailableError(f"S3 删除失败: {exc}") from exc
        errors = resp.get("Errors") or []
        if errors:
            first = errors[0]
            raise StorageUnavailableError(f"S3 删除失败: {first.get('Key')} {first.get('Message')}")

    def create_signed_url(self, key: str, expires_in: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except self._errors as exc:
            raise StorageUnavailableError(f"预签名 URL 生成失败: {exc}") from exc


# ------------------------------------------
# 本地文件系统实现（开发/测试）
# ------------------------------------------


class LocalBackend(StorageBackend):
    """以本地目录模拟对象存储：目录仅在其下仍有对象时存在。"""

    name = "local"

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        if not self.root.exists():
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:  # pragma: no cover - 极端情况下可能失败
                raise AppException(f"无法创建本地根目录: {exc}", HTTP_STATUS_INTERNAL_ERROR) from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        candidate = (self.root / key.strip().lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法路径: 越权访问", HTTP_STATUS_BAD_REQUEST) from exc
        return candidate

    def _entry(self, entry: Path) -> ListEntry:
        stat = entry.stat()
        if entry.is_dir():
            return ListEntry(name=entry.name)
        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()
        return ListEntry(
            name=entry.name,
            id=entry.relative_to(self.root).as_posix(),
            metadata={"size": int(stat.st_size), "mimetype": _norm_mime(entry.name)},
            updated_at=modified,
            created_at=modified,
        )

    def list(self, prefix: str, *, limit: int, offset: int = 0, sort_by: str = "name", order: str = "asc") -> List[ListEntry]:
        base = self._resolve(prefix or "")
        if not base.is_dir():
            return []
        try:
            entries = [self._entry(child) for child in base.iterdir()]
        except OSError as exc:
            raise StorageUnavailableError(f"无法读取目录内容: {exc}") from exc
        return _sort_and_page(entries, limit=limit, offset=offset, order=order)

    def upload(self, key: str, data: bytes, *, content_type: str = DEFAULT_CONTENT_TYPE, upsert: bool = False) -> str:
        dst = self._resolve(key)
        if dst.is_dir() or (dst.exists() and not upsert):
            raise ObjectExistsError(key)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            dst.write_bytes(data)
        except OSError as exc:
            logger.exception("Local upload failed: %s", exc)
            raise StorageUnavailableError(f"上传失败: {exc}") from exc
        return key

    def _prune(self, directory: Path) -> None:
        while directory != self.root and directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
            directory = directory.parent

    def remove(self, keys: Sequence[str]) -> None:
        for key in keys:
            target = self._resolve(key)
            if not target.is_file():
                # 与对象存储一致：删除不存在的键视为成功
                continue
            try:
                target.unlink()
                self._prune(target.parent)
            except OSError as exc:
                raise StorageUnavailableError(f"删除失败: {exc}") from exc

    def create_signed_url(self, key: str, expires_in: int) -> str:
        target = self._resolve(key)
        if not target.is_file():
            raise AppException("文件不存在", HTTP_STATUS_NOT_FOUND)
        # 本地目录没有签名机制，仅返回文件地址供开发调试
        return target.as_uri()


def build_backend(
    *,
    type: str,
    bucket_name: Optional[str] = None,
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
    supabase_url: Optional[str] = None,
    supabase_key: Optional[str] = None,
    local_root_path: Optional[str | Path] = None,
) -> StorageBackend:
    t = (type or "").upper()
    if t == "LOCAL":
        if not local_root_path:
            raise AppException("缺少本地根目录配置", HTTP_STATUS_BAD_REQUEST)
        return LocalBackend(local_root_path)
    if t == "SUPABASE":
        if not (supabase_url and supabase_key and bucket_name):
            raise AppException("Supabase 配置不完整", HTTP_STATUS_BAD_REQUEST)
        return SupabaseBackend(url=supabase_url, service_role_key=supabase_key, bucket=bucket_name)
    if t == "S3":
        if not bucket_name:
            raise AppException("S3 配置不完整", HTTP_STATUS_BAD_REQUEST)
        return S3Backend(
            bucket=bucket_name,
            region=region,
            endpoint_url=endpoint_url,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
        )
    raise AppException("不支持的存储类型", HTTP_STATUS_BAD_REQUEST)
